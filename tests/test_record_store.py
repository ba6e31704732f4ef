from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from fieldapp.db import Base, build_engine, build_session_factory
from fieldapp.errors import StorageFailure
from fieldapp.storage.memory_store import InMemoryRecordStore
from fieldapp.storage.sql_store import SqlRecordStore


@pytest.fixture(params=["sql", "memory"])
def store(request, session_factory):
    if request.param == "sql":
        return SqlRecordStore(session_factory, "attendance")
    return InMemoryRecordStore("attendance")


def _fail_commit(self):
    raise OperationalError("COMMIT", {}, Exception("database or disk is full"))


def test_get_missing_key_is_absent(store):
    assert store.get("nope") is None


def test_put_overwrites_and_round_trips_datetimes(store):
    stamp = datetime(2026, 1, 22, 3, 30, tzinfo=timezone.utc)
    store.put("today", {"punch_in_time": stamp, "flag": True})
    store.put("today", {"punch_in_time": stamp, "flag": False, "count": 2})

    value = store.get("today")
    assert value == {"punch_in_time": stamp, "flag": False, "count": 2}
    assert isinstance(value["punch_in_time"], datetime)


def test_remove_and_clear_are_scoped_to_namespace(session_factory):
    shared = {}
    for make in (
        lambda ns: SqlRecordStore(session_factory, ns),
        lambda ns: InMemoryRecordStore(ns, shared=shared),
    ):
        attendance, dpr = make("attendance"), make("dpr")
        attendance.put("a", 1)
        attendance.put("b", 2)
        dpr.put("a", "kept")
        dpr.append_to_list("entries", {"n": 1})

        attendance.remove("a")
        assert attendance.get("a") is None
        assert attendance.get("b") == 2

        attendance.clear()
        assert attendance.get("b") is None
        assert dpr.get("a") == "kept"
        assert dpr.read_list("entries") == [{"n": 1}]


def test_append_assigns_positions_in_order(store):
    assert store.read_list("entries") == []
    positions = [store.append_to_list("entries", {"n": i}) for i in range(3)]
    assert positions == [0, 1, 2]
    assert store.read_list("entries") == [{"n": 0}, {"n": 1}, {"n": 2}]
    assert store.read_list("other") == []


def test_sql_store_survives_restart(tmp_path):
    url = f"sqlite:///{tmp_path / 'restart.db'}"
    engine = build_engine(url)
    Base.metadata.create_all(bind=engine)
    store = SqlRecordStore(build_session_factory(engine), "dpr")
    store.put("k", "v")
    store.append_to_list("entries", {"id": "x"})
    engine.dispose()

    reopened = build_engine(url)
    store = SqlRecordStore(build_session_factory(reopened), "dpr")
    assert store.get("k") == "v"
    assert store.read_list("entries") == [{"id": "x"}]
    reopened.dispose()


def test_failed_put_leaves_prior_value(session_factory, monkeypatch):
    store = SqlRecordStore(session_factory, "attendance")
    store.put("today", {"v": 1})

    monkeypatch.setattr(Session, "commit", _fail_commit)
    with pytest.raises(StorageFailure):
        store.put("today", {"v": 2})
    monkeypatch.undo()

    assert store.get("today") == {"v": 1}


def test_failed_append_leaves_list_unchanged(session_factory, monkeypatch):
    store = SqlRecordStore(session_factory, "dpr")
    store.append_to_list("entries", {"n": 0})

    monkeypatch.setattr(Session, "commit", _fail_commit)
    with pytest.raises(StorageFailure):
        store.append_to_list("entries", {"n": 1})
    monkeypatch.undo()

    assert store.read_list("entries") == [{"n": 0}]
    assert store.append_to_list("entries", {"n": 1}) == 1


def test_unsupported_value_is_rejected(store):
    with pytest.raises(TypeError):
        store.put("k", object())


def _fail_execute(self, *args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database is locked"))


def test_read_fault_is_storage_failure_not_absent(session_factory, monkeypatch):
    store = SqlRecordStore(session_factory, "attendance")
    store.put("today", {"v": 1})

    monkeypatch.setattr(Session, "execute", _fail_execute)
    with pytest.raises(StorageFailure):
        store.get("today")
    with pytest.raises(StorageFailure):
        store.get("never-written")
    monkeypatch.undo()

    assert store.get("today") == {"v": 1}
    assert store.get("never-written") is None


def test_read_list_fault_is_storage_failure(session_factory, monkeypatch):
    store = SqlRecordStore(session_factory, "dpr")
    store.append_to_list("entries", {"n": 0})

    monkeypatch.setattr(Session, "execute", _fail_execute)
    with pytest.raises(StorageFailure):
        store.read_list("entries")
    monkeypatch.undo()

    assert store.read_list("entries") == [{"n": 0}]
