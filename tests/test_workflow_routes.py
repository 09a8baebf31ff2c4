import uuid

import pytest
from fastapi.testclient import TestClient

from climate_seal.api.dependencies import get_current_user
from climate_seal.database import get_db
from climate_seal.main import app
from climate_seal.models import Workflow
from climate_seal.services.checkpoint_service import list_checkpoints, save_checkpoint

OWNER = uuid.uuid4()
STRANGER = uuid.uuid4()


@pytest.fixture
def as_user(db_session):
    current = {"id": str(OWNER), "email": "owner@example.com"}
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_current_user] = lambda: current

    def switch(user_id):
        current["id"] = str(user_id)
        return TestClient(app)

    yield switch
    app.dependency_overrides.clear()


@pytest.fixture
def public_workflow(db_session):
    row = Workflow(
        user_id=OWNER,
        name="Laptop PCF",
        is_public=True,
        nodes=[
            {"id": "steel", "type": "product", "data": {"label": "steel", "nodeType": "product"}},
            {"id": "laptop", "type": "finalProduct", "data": {"label": "laptop", "nodeType": "finalProduct"}},
        ],
        edges=[{"id": "e1", "source": "laptop", "target": "steel"}],
    )
    db_session.add(row)
    db_session.commit()
    return str(row.id)


def test_validation_report(as_user, public_workflow):
    response = as_user(STRANGER).get(f"/api/v1/workflows/{public_workflow}/validation")

    assert response.status_code == 200
    report = response.json()
    assert report["isValid"] is False
    assert [e["type"] for e in report["errors"]] == ["no_main_product", "invalid_flow_direction"]
    assert len(report["modelingRecommendations"]) == 4


def test_unknown_or_malformed_id_is_404(as_user):
    client = as_user(OWNER)
    assert client.get(f"/api/v1/workflows/{uuid.uuid4()}/validation").status_code == 404
    assert client.get("/api/v1/workflows/not-a-uuid/validation").status_code == 404


def test_public_workflow_cannot_be_changed_by_others(as_user, public_workflow, db_session):
    save_checkpoint(db_session, uuid.UUID(public_workflow), "baseline", {"nodes": []})
    client = as_user(STRANGER)

    assert client.get(f"/api/v1/workflows/{public_workflow}").status_code == 200
    assert client.put(f"/api/v1/workflows/{public_workflow}/graph", json={"nodes": [], "edges": []}).status_code == 404
    assert client.patch(f"/api/v1/workflows/{public_workflow}", json={"name": "hijacked"}).status_code == 404
    assert client.delete(f"/api/v1/workflows/{public_workflow}/checkpoints").status_code == 404
    assert client.get(f"/api/v1/workflows/{public_workflow}/checkpoints/baseline?apply=true").status_code == 404
    assert client.get(f"/api/v1/workflows/{public_workflow}/checkpoints/baseline").status_code == 200

    db_session.expire_all()
    row = db_session.get(Workflow, uuid.UUID(public_workflow))
    assert row.name == "Laptop PCF"
    assert len(row.nodes) == 2
    assert [c["name"] for c in list_checkpoints(db_session, row.id)] == ["baseline"]


def test_owner_can_replace_graph(as_user, public_workflow):
    response = as_user(OWNER).put(f"/api/v1/workflows/{public_workflow}/graph", json={"nodes": [], "edges": []})

    assert response.status_code == 200
    assert response.json()["nodes"] == []
