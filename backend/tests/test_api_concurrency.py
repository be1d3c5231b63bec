"""Concurrency-focused tests exercising the API's per-request isolation."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from fastapi.testclient import TestClient
from backend.app.main import app

client = TestClient(app)


def _post_run(payload):
    r = client.post("/run", json=payload)
    return r.status_code, r.json()


def test_concurrent_runs_isolated():
    # each job has its own command table and limits
    jobs = [
        {"code": "repeat(30):\n  feed()", "commands": {"feed": "a"}},
        {"code": "while go():\n  step()", "commands": {"go": True, "step": None}, "settings": {"max_iterations": 3}},
        {"code": "play(), sleep()", "commands": {"play": None, "sleep": None}},
    ]

    results = []
    with ThreadPoolExecutor(max_workers=3) as ex:
        futures = [ex.submit(_post_run, j) for j in jobs]
        for fut in as_completed(futures):
            results.append(fut.result())

    assert len(results) == 3
    assert all(code == 200 for code, _ in results)

    by_first_call = {}
    for _, body in results:
        assert 'output' in body and 'warnings' in body and 'calls' in body and 'errors' in body
        by_first_call[body["calls"][0]["name"]] = body

    # no cross-request pollution of traces or limits
    assert len(by_first_call["feed"]["calls"]) == 30
    assert by_first_call["go"]["errors"]["code"] == "ITERATION_LIMIT"
    assert [c["name"] for c in by_first_call["play"]["calls"]] == ["play", "sleep"]
