import pytest

from kiosk.errors import QueueCorrupted
from kiosk.services.queue_store import LocalQueueStore, SubmissionRecord


def _rec(i):
    return SubmissionRecord(id=f"id-{i}", data={"comments": f"answer {i}"})


def test_append_keeps_insertion_order(queue):
    for i in range(3):
        queue.append(_rec(i))
    assert [r["id"] for r in queue.list()] == ["id-0", "id-1", "id-2"]


def test_empty_queue_lists_nothing(queue):
    assert queue.list() == []
    assert len(queue) == 0


def test_queue_survives_a_new_store_instance(storage):
    LocalQueueStore(storage).append(_rec(1))
    reopened = LocalQueueStore(storage)
    assert [r["id"] for r in reopened.list()] == ["id-1"]


def test_remove_by_ids_is_idempotent(queue):
    for i in range(4):
        queue.append(_rec(i))

    assert queue.remove_by_ids({"id-1", "id-3"}) == 2
    once = queue.list()
    assert queue.remove_by_ids({"id-1", "id-3"}) == 0
    assert queue.list() == once
    assert [r["id"] for r in once] == ["id-0", "id-2"]


def test_remove_unknown_ids_leaves_queue_untouched(queue):
    queue.append(_rec(1))
    before = queue.list()
    assert queue.remove_by_ids({"nope"}) == 0
    assert queue.remove_by_ids(set()) == 0
    assert queue.list() == before


def test_append_never_overwrites(queue):
    queue.append(_rec(1))
    queue.append({"id": "id-1", "timestamp": "t", "data": {}, "is_incomplete": True})
    assert len(queue.list()) == 2


def test_records_get_unique_ids_and_utc_timestamps():
    a, b = SubmissionRecord(), SubmissionRecord()
    assert a.id != b.id
    assert len(a.id) == 36
    assert a.timestamp.endswith("Z")
    assert a.is_incomplete is False


def test_clear_drops_everything(queue):
    queue.append(_rec(1))
    queue.append(_rec(2))
    assert queue.clear() == 2
    assert queue.list() == []


def test_corrupted_queue_raises(storage):
    storage.write_text("surveySubmissions.json", "{not json")
    with pytest.raises(QueueCorrupted):
        LocalQueueStore(storage).list()


def test_non_array_queue_raises(storage):
    storage.write_json("surveySubmissions.json", {"id": "x"})
    with pytest.raises(QueueCorrupted):
        LocalQueueStore(storage).list()
