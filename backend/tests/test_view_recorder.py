"""Tests for ViewRecorder and the asyncpg-backed view store."""

import uuid

import pytest

from conftest import FakePool
from jobboard.services.view_recorder import (
    MAX_COOKIE_ID_LEN,
    PgViewStore,
    ViewErrorKind,
    ViewRecorder,
)


@pytest.mark.asyncio
async def test_records_anonymized_event(store):
    recorder = ViewRecorder(store)

    result = await recorder.record_view("job-1", "203.0.113.77", "Mozilla/5.0")

    assert result.ok
    assert result.is_new_cookie_id
    assert len(store.events) == 1
    event = store.events[0]
    assert event.job_id == "job-1"
    assert event.viewer_ip == "203.0.113.0"
    assert event.user_agent == "Mozilla/5.0"
    assert event.viewer_cookie_id == result.correlation_id
    assert event.viewed_at.tzinfo is not None


@pytest.mark.asyncio
async def test_existing_cookie_id_is_returned_unchanged(store):
    recorder = ViewRecorder(store)

    first = await recorder.record_view("job-1", "1.2.3.4", "ua", "viewer-abc")
    second = await recorder.record_view("job-2", "1.2.3.4", "ua", "viewer-abc")

    assert first.correlation_id == second.correlation_id == "viewer-abc"
    assert not first.is_new_cookie_id
    assert [e.viewer_cookie_id for e in store.events] == ["viewer-abc", "viewer-abc"]


@pytest.mark.asyncio
async def test_new_callers_get_distinct_uuid4_ids(store):
    recorder = ViewRecorder(store)

    a = await recorder.record_view("job-1", "1.2.3.4", "ua")
    b = await recorder.record_view("job-1", "5.6.7.8", "ua")

    assert a.correlation_id != b.correlation_id
    assert uuid.UUID(a.correlation_id).version == 4


@pytest.mark.asyncio
async def test_store_failure_is_returned_not_raised(store):
    store.fail = True
    recorder = ViewRecorder(store)

    result = await recorder.record_view("job-1", "1.2.3.4", "ua", "viewer-abc")

    assert not result.ok
    assert result.error is ViewErrorKind.PERSISTENCE_FAILURE
    assert result.correlation_id == "viewer-abc"
    assert store.events == []


@pytest.mark.asyncio
async def test_store_timeout_is_persistence_failure(store):
    store.delay = 1.0
    recorder = ViewRecorder(store, timeout_sec=0.01)

    result = await recorder.record_view("job-1", "1.2.3.4", "ua")

    assert result.error is ViewErrorKind.PERSISTENCE_FAILURE
    assert store.events == []


@pytest.mark.asyncio
async def test_missing_store_is_persistence_failure():
    recorder = ViewRecorder(None)

    result = await recorder.record_view("job-1", "1.2.3.4", "ua")

    assert result.error is ViewErrorKind.PERSISTENCE_FAILURE
    assert result.correlation_id


@pytest.mark.asyncio
async def test_pg_store_inserts_into_job_views(store):
    pool = FakePool()
    recorder = ViewRecorder(PgViewStore(pool))

    result = await recorder.record_view("job-9", "198.51.100.9", "curl/8", "viewer-1")

    assert result.ok
    (sql, args), = pool.conn.executed
    assert "INSERT INTO job_views" in sql
    assert args[:4] == ("job-9", "198.51.100.0", "viewer-1", "curl/8")


@pytest.mark.asyncio
async def test_overlong_cookie_id_is_replaced_with_new_one(store):
    recorder = ViewRecorder(store)

    result = await recorder.record_view("job-1", "1.2.3.4", "ua", "x" * (MAX_COOKIE_ID_LEN + 1))

    assert result.is_new_cookie_id
    assert len(result.correlation_id) == 36
    assert store.events[0].viewer_cookie_id == result.correlation_id


@pytest.mark.asyncio
async def test_cookie_id_at_limit_is_kept(store):
    recorder = ViewRecorder(store)
    cookie_id = "y" * MAX_COOKIE_ID_LEN

    result = await recorder.record_view("job-1", "1.2.3.4", "ua", cookie_id)

    assert not result.is_new_cookie_id
    assert result.correlation_id == cookie_id
