import uuid

import pytest

from climate_seal.core.exceptions import NotFoundError
from climate_seal.models import Workflow
from climate_seal.services.workflow_service import (
    delete_workflow,
    get_workflow,
    get_workflow_row,
    update_workflow,
)

OWNER = uuid.uuid4()
STRANGER = uuid.uuid4()


def _workflow(db, is_public):
    row = Workflow(user_id=OWNER, name="Laptop PCF", is_public=is_public, nodes=[], edges=[])
    db.add(row)
    db.commit()
    return row.id


def test_public_workflow_is_readable_by_anyone(db_session):
    workflow_id = _workflow(db_session, is_public=True)
    assert get_workflow(db_session, workflow_id, str(STRANGER))["name"] == "Laptop PCF"


def test_private_workflow_is_hidden(db_session):
    workflow_id = _workflow(db_session, is_public=False)
    with pytest.raises(NotFoundError):
        get_workflow_row(db_session, workflow_id, str(STRANGER))


def test_public_workflow_is_read_only_for_others(db_session):
    workflow_id = _workflow(db_session, is_public=True)

    with pytest.raises(NotFoundError):
        get_workflow_row(db_session, workflow_id, str(STRANGER), require_owner=True)
    with pytest.raises(NotFoundError):
        update_workflow(db_session, workflow_id, str(STRANGER), {"name": "hijacked"})
    with pytest.raises(NotFoundError):
        delete_workflow(db_session, workflow_id, str(STRANGER))

    assert get_workflow(db_session, workflow_id, str(OWNER))["name"] == "Laptop PCF"


def test_owner_can_update_and_delete(db_session):
    workflow_id = _workflow(db_session, is_public=True)

    updated = update_workflow(db_session, workflow_id, str(OWNER), {"name": "Laptop PCF v2"})
    assert updated["name"] == "Laptop PCF v2"

    assert delete_workflow(db_session, workflow_id, str(OWNER)) is True
    with pytest.raises(NotFoundError):
        get_workflow_row(db_session, workflow_id, str(OWNER))
