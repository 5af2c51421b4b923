import pytest

from senior_core.datastore.base import apply_query
from senior_core.datastore.exceptions import DocumentNotFoundError


def test_set_and_get_document(datastore):
    datastore.set_document("users", "u1", {"firstName": "Maria", "age": 72})

    doc = datastore.get_document("users", "u1")

    assert doc == {"firstName": "Maria", "age": 72, "id": "u1"}


def test_get_missing_document_raises(datastore):
    with pytest.raises(DocumentNotFoundError) as exc:
        datastore.get_document("users", "missing")
    assert exc.value.collection == "users"
    assert exc.value.document_id == "missing"


def test_add_document_stamps_times(datastore):
    doc_id = datastore.add_document("activities", {"title": "Login"})

    doc = datastore.get_document("activities", doc_id)

    assert doc["title"] == "Login"
    assert doc["createdAt"] == doc["updatedAt"]


def test_merge_keeps_existing_fields(datastore):
    datastore.set_document("fcm_tokens", "u1", {"userId": "u1", "tokens": ["a"]})
    datastore.set_document("fcm_tokens", "u1", {"tokens": ["a", "b"]}, merge=True)

    assert datastore.get_document("fcm_tokens", "u1") == {"userId": "u1", "tokens": ["a", "b"], "id": "u1"}


def test_update_missing_document_raises(datastore):
    with pytest.raises(DocumentNotFoundError):
        datastore.update_document("users", "nobody", {"isActive": False})


def test_delete_missing_document_is_noop(datastore):
    datastore.delete_document("users", "nobody")


def test_list_documents_filters_sorts_and_limits(datastore):
    for i, role in enumerate(["senior_citizen", "admin", "senior_citizen", "senior_citizen"]):
        datastore.set_document("users", f"u{i}", {"role": role, "age": 60 + i})

    docs = datastore.list_documents(
        "users", where=[("role", "==", "senior_citizen")], order_by="age", descending=True, limit=2
    )

    assert [d["id"] for d in docs] == ["u3", "u2"]


def test_list_missing_collection_is_empty(datastore):
    assert datastore.list_documents("nothing") == []


def test_delete_where(datastore):
    datastore.set_document("health_records", "r1", {"seniorId": "s1"})
    datastore.set_document("health_records", "r2", {"seniorId": "s2"})
    datastore.set_document("health_records", "r3", {"seniorId": "s1"})

    assert datastore.delete_where("health_records", "seniorId", "s1") == 2
    assert [d["id"] for d in datastore.list_documents("health_records")] == ["r2"]


def test_on_snapshot_not_supported(datastore):
    with pytest.raises(NotImplementedError):
        datastore.on_snapshot("users", lambda docs: None)


def test_apply_query_puts_missing_sort_keys_last():
    docs = [{"id": "a"}, {"id": "b", "n": 2}, {"id": "c", "n": 1}]

    assert [d["id"] for d in apply_query(docs, order_by="n")] == ["c", "b", "a"]


def test_apply_query_rejects_unknown_operator():
    with pytest.raises(ValueError):
        apply_query([{"n": 1}], where=[("n", "~", 1)])


def test_documents_are_stored_as_utf8(datastore):
    datastore.set_document("benefits", "b1", {"title": "Pension ₱1,000", "notes": "Señor 🎉"})

    assert datastore.get_document("benefits", "b1")["title"] == "Pension ₱1,000"
    with open(datastore._get_path("benefits", "b1.json"), encoding="utf-8") as f:
        raw = f.read()
    assert "₱1,000" in raw
    assert "Señor 🎉" in raw
