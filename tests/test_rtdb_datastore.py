from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from firebase_admin import exceptions as firebase_exceptions

from senior_core.datastore.exceptions import DatastoreError, DocumentNotFoundError
from senior_core.datastore.rtdb.service import RealtimeDatabaseService, to_rtdb_value
from senior_core.entities.benefit import BenefitStatus


@pytest.fixture
def refs():
    return {}


@pytest.fixture
def rtdb(refs):
    def reference(path, app=None):
        return refs.setdefault(path, MagicMock(name=path))

    return RealtimeDatabaseService(root="/seniorhub/", reference_factory=reference)


def test_to_rtdb_value_keeps_json_types():
    when = datetime(2025, 3, 10, tzinfo=timezone.utc)

    assert to_rtdb_value({"at": when, "tags": (BenefitStatus.ACTIVE, "x")}) == {
        "at": 1741564800000, "tags": ["Active", "x"],
    }


def test_get_document_adds_id(rtdb, refs):
    rtdb._ref("users", "u1").get.return_value = {"firstName": "Maria"}

    assert rtdb.get_document("users", "u1") == {"firstName": "Maria", "id": "u1"}
    assert "/seniorhub/users/u1" in refs


def test_get_missing_document_raises(rtdb):
    rtdb._ref("users", "nope").get.return_value = None

    with pytest.raises(DocumentNotFoundError):
        rtdb.get_document("users", "nope")


def test_list_documents_queries_client_side(rtdb):
    rtdb._ref("users").get.return_value = {
        "u1": {"role": "senior_citizen", "age": 70},
        "u2": {"role": "senior_citizen", "age": 81},
        "u3": {"role": "family_member", "age": 45},
        "u4": {"role": "senior_citizen", "age": 65},
        "junk": "not a document",
    }

    docs = rtdb.list_documents(
        "users", where=[("role", "==", "senior_citizen")], order_by="age", descending=True, limit=2
    )

    assert [d["id"] for d in docs] == ["u2", "u1"]


def test_list_empty_node(rtdb):
    rtdb._ref("benefits").get.return_value = None

    assert rtdb.list_documents("benefits") == []


def test_add_document_pushes_stamped_payload(rtdb):
    node = rtdb._ref("activities")
    node.push.return_value.key = "-Nabc"

    doc_id = rtdb.add_document("activities", {"title": "Login"})

    payload = node.push.call_args.args[0]
    assert doc_id == "-Nabc"
    assert payload["title"] == "Login"
    assert payload["createdAt"] == payload["updatedAt"]


def test_set_document_replaces_or_merges(rtdb):
    node = rtdb._ref("users", "u1")

    rtdb.set_document("users", "u1", {"id": "u1", "status": BenefitStatus.ACTIVE})
    rtdb.set_document("users", "u1", {"age": 72}, merge=True)

    node.set.assert_called_once_with({"status": "Active"})
    node.update.assert_called_once_with({"age": 72})


def test_update_and_delete(rtdb):
    node = rtdb._ref("users", "u1")

    rtdb.update_document("users", "u1", {"isActive": False})
    rtdb.delete_document("users", "u1")

    update = node.update.call_args.args[0]
    assert update["isActive"] is False
    assert update["updatedAt"] > 0
    node.delete.assert_called_once_with()


def test_firebase_errors_become_datastore_errors(rtdb):
    cause = firebase_exceptions.UnavailableError("down")
    rtdb._ref("users").get.side_effect = cause

    with pytest.raises(DatastoreError) as exc:
        rtdb.list_documents("users")
    assert exc.value.cause is cause


def test_on_snapshot_passes_whole_collection(rtdb):
    node = rtdb._ref("emergency_alerts")
    node.get.return_value = {"a1": {"status": "ACTIVE"}}
    received = []

    handle = rtdb.on_snapshot("emergency_alerts", received.append)
    listener = node.listen.call_args.args[0]
    listener(MagicMock(path="/a1"))

    assert handle is node.listen.return_value
    assert received == [[{"status": "ACTIVE", "id": "a1"}]]
