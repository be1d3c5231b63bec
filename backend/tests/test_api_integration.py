"""End-to-end checks of the /run, /parse and /tokens endpoints."""

import pytest
from fastapi.testclient import TestClient

from backend.app.main import app


@pytest.fixture(scope="module")
def client():
    client = TestClient(app)
    yield client
    client.close()


def test_run_trace_and_output(client):
    code = (
        "for i in range(2):\n"
        "    move_right()\n"
        "while can_move_down():\n"
        "    move_down()\n"
        "if at_goal():\n"
        "    say('made it', 3)\n"
        "else:\n"
        "    say('lost')\n"
    )
    commands = {
        "move_right": True,
        "move_down": True,
        "can_move_down": [True, True, False],
        "at_goal": True,
        "say": None,
    }
    r = client.post("/run", json={"code": code, "commands": commands})
    assert r.status_code == 200
    body = r.json()
    assert body["errors"] is None
    names = [c["name"] for c in body["calls"]]
    assert names == [
        "move_right", "move_right",
        "can_move_down", "move_down", "can_move_down", "move_down", "can_move_down",
        "at_goal", "say",
    ]
    assert body["calls"][-1]["args"] == ["made it", 3]
    assert "Looping 2 times..." in body["output"]
    assert isinstance(body["duration_ms"], int)


def test_run_reports_unknown_command(client):
    r = client.post("/run", json={"code": "fly()\nfeed()", "commands": {"feed": None}})
    body = r.json()
    assert body["errors"] is None
    assert "NameError: 'fly' is not defined" in body["warnings"]
    assert [c["name"] for c in body["calls"]] == ["feed"]


def test_run_syntax_error(client):
    r = client.post("/run", json={"code": "repeat(3)\n  feed()", "commands": {"feed": None}})
    body = r.json()
    err = body["errors"]
    assert err["code"] == "SYNTAX_ERROR"
    assert err["line"] == 1
    assert body["calls"] == []


def test_parse_endpoint(client):
    r = client.post("/parse", json={"code": "repeat(2):\n  if hungry():\n    feed()"})
    assert r.status_code == 200
    body = r.json()
    assert body["errors"] is None
    assert body["ast"]["type"] == "Program"
    rep = body["ast"]["body"][0]
    assert rep["type"] == "Repeat" and rep["count"] == 2
    assert body["commands"] == ["hungry", "feed"]


def test_parse_endpoint_syntax_error(client):
    r = client.post("/parse", json={"code": "if hungry():\nfeed()"})
    body = r.json()
    assert body["ast"] is None
    assert body["errors"]["code"] == "SYNTAX_ERROR"
    assert body["errors"]["line"] == 1


def test_tokens_endpoint(client):
    r = client.post("/tokens", json={"code": "repeat(1):\n\tfeed()"})
    body = r.json()
    kinds = [t["kind"] for t in body["tokens"]]
    assert kinds[:6] == ["REPEAT", "LPAREN", "NUMBER", "RPAREN", "COLON", "NEWLINE"]
    assert kinds[-2:] == ["DEDENT", "EOF"]


def test_tokens_endpoint_indentation_error(client):
    code = "if a():\n    b()\n  c()"
    strict = client.post("/tokens", json={"code": code}).json()
    assert strict["errors"]["code"] == "SYNTAX_ERROR"
    lenient = client.post("/tokens", json={"code": code, "strict_indentation": False}).json()
    assert lenient["errors"] is None


def test_run_rejects_missing_code(client):
    r = client.post("/run", json={"commands": {}})
    assert r.status_code == 422


def test_parse_endpoint_huge_count(client):
    r = client.post("/parse", json={"code": "repeat(" + "9" * 400 + "):\n  feed()"})
    assert r.status_code == 200
    body = r.json()
    assert body["ast"] is None
    assert body["errors"]["code"] == "SYNTAX_ERROR"


def test_run_deep_nesting_is_syntax_error(client):
    r = client.post("/run", json={"code": "f(" * 2000 + ")" * 2000, "commands": {"f": None}})
    body = r.json()
    assert body["errors"]["code"] == "SYNTAX_ERROR"
    assert body["calls"] == []
