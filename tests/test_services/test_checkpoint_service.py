import itertools
import json
import uuid

import pytest

from climate_seal.core.exceptions import NotFoundError, ValidationError
from climate_seal.models import Workflow
from climate_seal.services import checkpoint_service
from climate_seal.services.checkpoint_service import (
    clear_checkpoints,
    delete_checkpoint,
    export_checkpoint,
    import_checkpoint,
    list_checkpoints,
    parse_checkpoint_document,
    restore_checkpoint,
    save_checkpoint,
)


def _document(**overrides):
    document = {
        "name": "before-import",
        "timestamp": 1718000000000,
        "data": {"nodes": [], "edges": []},
        "metadata": {"description": "baseline", "tags": ["v1"], "version": "1.0", "owner": "x"},
    }
    document.update(overrides)
    return json.dumps(document)


def test_parse_valid_document_keeps_known_metadata():
    document = parse_checkpoint_document(_document())
    assert document["name"] == "before-import"
    assert document["metadata"] == {"description": "baseline", "tags": ["v1"], "version": "1.0"}


def test_parse_rejects_bad_json():
    with pytest.raises(ValidationError, match="Invalid JSON file"):
        parse_checkpoint_document("{not json")


@pytest.mark.parametrize("overrides", [{"name": ""}, {"timestamp": None}, {"data": {}}])
def test_parse_rejects_missing_fields(overrides):
    with pytest.raises(ValidationError, match="Missing required fields"):
        parse_checkpoint_document(_document(**overrides))


@pytest.mark.parametrize("overrides", [{"name": 12}, {"timestamp": "yesterday"}, {"timestamp": True}, {"data": [1]}])
def test_parse_rejects_wrong_types(overrides):
    with pytest.raises(ValidationError, match="Incorrect field types"):
        parse_checkpoint_document(_document(**overrides))


def test_save_rejects_blank_name_before_touching_db():
    with pytest.raises(ValidationError):
        save_checkpoint(None, "wf", "   ", {"nodes": []})
    with pytest.raises(ValidationError):
        save_checkpoint(None, "wf", "ok", ["not", "a", "dict"])


@pytest.fixture
def workflow_id(db_session, monkeypatch):
    ticks = itertools.count(1_700_000_000_000, 1000)
    monkeypatch.setattr(checkpoint_service, "_now_ms", lambda: next(ticks))
    monkeypatch.setattr(checkpoint_service.settings, "max_checkpoints", 2)
    row = Workflow(user_id=uuid.uuid4(), name="Laptop PCF", nodes=[], edges=[])
    db_session.add(row)
    db_session.commit()
    return row.id


def _names(db, workflow_id):
    return [item["name"] for item in list_checkpoints(db, workflow_id)]


def test_save_same_name_overwrites(db_session, workflow_id):
    save_checkpoint(db_session, workflow_id, "draft", {"nodes": [{"id": "a"}]}, {"tags": ["v1"]})
    result = save_checkpoint(db_session, workflow_id, "draft", {"nodes": [{"id": "b"}]}, {"version": "2.0"})

    assert result["removed"] is None
    assert result["checkpoint"]["version"] == "2.0"
    assert result["checkpoint"]["tags"] == []
    assert _names(db_session, workflow_id) == ["draft"]
    assert restore_checkpoint(db_session, workflow_id, "draft") == {"nodes": [{"id": "b"}], "name": "draft"}


def test_new_name_over_limit_drops_oldest(db_session, workflow_id):
    save_checkpoint(db_session, workflow_id, "first", {"nodes": []})
    save_checkpoint(db_session, workflow_id, "second", {"nodes": []})
    result = save_checkpoint(db_session, workflow_id, "third", {"nodes": []})

    assert result["removed"] == "first"
    assert _names(db_session, workflow_id) == ["third", "second"]

    # overwriting at the limit keeps everything
    result = save_checkpoint(db_session, workflow_id, "second", {"nodes": [{"id": "x"}]})
    assert result["removed"] is None
    assert _names(db_session, workflow_id) == ["second", "third"]


def test_missing_checkpoint_raises_not_found(db_session, workflow_id):
    with pytest.raises(NotFoundError):
        restore_checkpoint(db_session, workflow_id, "ghost")
    with pytest.raises(NotFoundError):
        delete_checkpoint(db_session, workflow_id, "ghost")
    with pytest.raises(NotFoundError):
        export_checkpoint(db_session, workflow_id, "ghost")


def test_delete_and_clear(db_session, workflow_id):
    save_checkpoint(db_session, workflow_id, "first", {"nodes": []})
    save_checkpoint(db_session, workflow_id, "second", {"nodes": []})

    assert delete_checkpoint(db_session, workflow_id, "first") is True
    assert _names(db_session, workflow_id) == ["second"]
    assert clear_checkpoints(db_session, workflow_id) == 1
    assert list_checkpoints(db_session, workflow_id) == []


def test_export_then_import_into_another_workflow(db_session, workflow_id):
    save_checkpoint(
        db_session, workflow_id, "baseline", {"nodes": [{"id": "n1"}]}, {"description": "before review"}
    )
    document = export_checkpoint(db_session, workflow_id, "baseline")

    other = Workflow(user_id=uuid.uuid4(), name="Copy", nodes=[], edges=[])
    db_session.add(other)
    db_session.commit()

    result = import_checkpoint(db_session, other.id, document)
    assert result["checkpoint"]["name"] == "baseline"
    assert result["checkpoint"]["description"] == "before review"
    assert restore_checkpoint(db_session, other.id, "baseline")["nodes"] == [{"id": "n1"}]
