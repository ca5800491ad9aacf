import pytest
from fastapi.testclient import TestClient

from allocator.api.v1.timelines.dependencies import _editors
from allocator.database import DatabaseHelper, db
from allocator.main import app

PREFIX = "/api/v1"


@pytest.fixture
def client(tmp_path, monkeypatch):
    helper = DatabaseHelper(url=f"sqlite+aiosqlite:///{tmp_path}/api.db")
    monkeypatch.setattr(db, "engine", helper.engine)
    monkeypatch.setattr(db, "session_factory", helper.session_factory)
    _editors.clear()
    with TestClient(app) as client:
        yield client
    _editors.clear()


def create_project(client, weights):
    response = client.post(f"{PREFIX}/projects/", json={
        "title": "Thesis",
        "start_at": "2024-03-04T09:00:00",
        "end_at": "2024-03-04T14:00:00",
    })
    assert response.status_code == 201
    project_iid = response.json()["data"]["iid"]
    for weight in weights:
        response = client.post(f"{PREFIX}/timelines/{project_iid}/segments", json={"weight": weight})
        assert response.status_code == 201
    response = client.post(f"{PREFIX}/timelines/{project_iid}/commit")
    assert response.status_code == 200
    return project_iid


def percentages(body):
    return [s["percentage"] for s in body["data"]["segments"]]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"


def test_project_requires_positive_span(client):
    response = client.post(f"{PREFIX}/projects/", json={
        "start_at": "2024-03-04T09:00:00",
        "end_at": "2024-03-04T09:00:00",
    })
    assert response.status_code == 422


def test_committed_sessions_are_stored(client):
    project_iid = create_project(client, [60, 100, 140])
    assert project_iid not in _editors

    body = client.get(f"{PREFIX}/timelines/{project_iid}").json()
    assert body["data"]["state"] == "CLEAN"
    assert body["data"]["version"] == 1
    assert body["data"]["duration_label"] == "5 hours"
    assert percentages(body) == [20, 33, 47]

    stored = client.get(f"{PREFIX}/segments/", params={"project_iid": project_iid}).json()["data"]
    assert [s["duration_minutes"] for s in stored] == [60, 100, 140]
    assert [s["position"] for s in stored] == [0, 1, 2]

    project = client.get(f"{PREFIX}/projects/{project_iid}").json()["data"]
    assert project["version"] == 1


def test_drag_gesture_and_discard(client):
    project_iid = create_project(client, [60, 100, 140])
    base = f"{PREFIX}/timelines/{project_iid}"

    assert client.post(f"{base}/drag/start", json={"handle": 0}).status_code == 200
    body = client.post(f"{base}/drag", json={"handle": 0, "pointer_fraction": 0.1}).json()
    assert percentages(body) == [10, 43, 47]
    assert body["data"]["dragging"] is True

    body = client.post(f"{base}/drag/end").json()
    assert body["data"]["dragging"] is False
    assert body["data"]["state"] == "DIRTY"

    body = client.post(f"{base}/discard").json()
    assert body["data"]["state"] == "CLEAN"
    assert percentages(body) == [20, 33, 47]


def test_boundary_edit_and_span(client):
    project_iid = create_project(client, [60, 100, 140])
    base = f"{PREFIX}/timelines/{project_iid}"
    last_id = client.get(base).json()["data"]["segments"][-1]["id"]

    body = client.patch(f"{base}/segments/{last_id}/boundary", json={
        "edge": "end",
        "moment": "2024-03-04T15:00:00",
    }).json()
    assert body["data"]["end"] == "2024-03-04T15:00:00"
    assert [s["duration_minutes"] for s in body["data"]["segments"]] == [60, 100, 200]

    body = client.patch(f"{base}/span", json={"start": "2024-03-05T09:00:00"}).json()
    assert body["data"]["start"] == "2024-03-05T09:00:00"
    assert body["data"]["end"] == "2024-03-05T15:00:00"


def test_error_mapping(client):
    project_iid = create_project(client, [100, 100])
    base = f"{PREFIX}/timelines/{project_iid}"
    first_id, second_id = [s["id"] for s in client.get(base).json()["data"]["segments"]]

    assert client.get(f"{PREFIX}/timelines/999").status_code == 404
    assert client.post(f"{base}/drag/end").status_code == 400
    assert client.post(f"{base}/drag/start", json={"handle": 1}).status_code == 400
    assert client.delete(f"{base}/segments/draft-missing").status_code == 404

    inverted = client.patch(f"{base}/segments/{second_id}/boundary", json={
        "edge": "end",
        "moment": "2024-03-04T10:00:00",
    })
    assert inverted.status_code == 422

    assert client.delete(f"{base}/segments/{first_id}").status_code == 200
    assert client.delete(f"{base}/segments/{second_id}").status_code == 409


def test_partial_commit_reports_failures(client):
    project_iid = create_project(client, [100, 100, 100])
    base = f"{PREFIX}/timelines/{project_iid}"
    client.post(f"{base}/drag", json={"handle": 0, "pointer_fraction": 0.5})
    editor = _editors[project_iid]

    async def refuse(segment_id, patch):
        raise ConnectionError("disk full")

    editor.store.persist_segment = refuse
    response = client.post(f"{base}/commit")

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["ok"] is False
    assert {f["target"] for f in detail["failures"]} == {"segment"}
    assert client.get(base).json()["data"]["state"] == "DIRTY"

    del editor.store.persist_segment
    response = client.post(f"{base}/commit")
    assert response.status_code == 200
    assert response.json()["data"]["timeline"]["state"] == "CLEAN"
