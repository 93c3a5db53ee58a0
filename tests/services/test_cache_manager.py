"""Tests for CacheManager: factory, clear_all, thread confinement and error policy."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest

from shelfcache.config.settings import CacheSettings
from shelfcache.services.cache_manager import CacheManager
from shelfcache.services.sqlite_store import SQLiteEntryStore
from shelfcache.shared.errors import (
    ApplicationError,
    ConfinementViolation,
    ErrorCode,
    PersistenceError,
    StoreOpenError,
)


def run_in_thread(func: Callable[[], Any]) -> tuple[Any, BaseException | None]:
    """Run func on a new thread and return (result, raised exception)."""
    outcome: dict[str, Any] = {"result": None, "error": None}

    def target() -> None:
        try:
            outcome["result"] = func()
        except BaseException as e:  # noqa: BLE001
            outcome["error"] = e

    worker = threading.Thread(target=target, name="worker")
    worker.start()
    worker.join(timeout=10)
    return outcome["result"], outcome["error"]


class TestCreation:
    def test_store_file_is_created_lazily(self, manager: CacheManager, settings: CacheSettings) -> None:
        # Given
        path = settings.store_path("test")
        assert not path.exists()

        # When
        manager.cache("c", cache_version="1", max_age=60)
        assert not path.exists()
        manager.cache("c", cache_version="1", max_age=60).get("k")

        # Then
        assert path.exists()
        assert manager.store.db_path == path

    def test_empty_name_is_rejected(self, settings: CacheSettings) -> None:
        with pytest.raises(ApplicationError) as exc_info:
            CacheManager("", settings=settings)

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID

    def test_empty_cache_name_is_rejected(self, manager: CacheManager) -> None:
        with pytest.raises(ApplicationError):
            manager.cache("", cache_version="1", max_age=60)

    @pytest.mark.parametrize("max_age", [0, -5, timedelta(0), timedelta(seconds=-1)])
    def test_non_positive_max_age_is_rejected(self, manager: CacheManager, max_age: Any) -> None:
        with pytest.raises(ApplicationError) as exc_info:
            manager.cache("c", cache_version="1", max_age=max_age)

        assert exc_info.value.context.additional_data == {"config_key": "max_age"}

    @pytest.mark.parametrize("max_age", [float("inf"), float("nan"), 1e300])
    def test_unrepresentable_max_age_is_rejected(self, manager: CacheManager, max_age: float) -> None:
        with pytest.raises(ApplicationError) as exc_info:
            manager.cache("c", cache_version="1", max_age=max_age)

        assert exc_info.value.context.additional_data == {"config_key": "max_age"}
        assert exc_info.value.original_error is not None

    def test_seconds_are_converted_to_timedelta(self, manager: CacheManager) -> None:
        cache = manager.cache("c", cache_version=7, max_age=90)

        assert cache.max_age == timedelta(seconds=90)
        assert cache.cache_version == "7"

    def test_custom_store(self, tmp_path: Path, settings: CacheSettings, clock) -> None:
        # Given
        store = SQLiteEntryStore(tmp_path / "custom" / "entries.db")

        # When
        with CacheManager("test", store=store, settings=settings, clock=clock) as manager:
            manager.cache("c", cache_version="1", max_age=60).set("k", "v")
            result = manager.cache("c", cache_version="1", max_age=60).get("k")

        # Then
        assert result == "v"
        assert (tmp_path / "custom" / "entries.db").exists()
        assert not settings.store_path("test").exists()

    def test_context_manager_closes_store(self, settings: CacheSettings, clock) -> None:
        with CacheManager("ctx", settings=settings, clock=clock) as manager:
            store = manager.store

        assert store.conn is None
        assert manager._store is None

    def test_default_clock_is_utc(self, settings: CacheSettings) -> None:
        with CacheManager("clock", settings=settings) as manager:
            now = manager.now()

        assert now.utcoffset() == timedelta(0)


class TestClearAll:
    def test_removes_entries_of_every_namespace(self, manager: CacheManager) -> None:
        # Given
        manager.cache("a", cache_version="1", max_age=60).set("k1", 1)
        manager.cache("a", cache_version="1", max_age=60).set("k2", 2)
        manager.cache("b", cache_version="9", max_age=3600).set("k", 3)

        # When
        deleted = manager.clear_all()

        # Then
        assert deleted == 3
        assert manager.store.count() == 0
        assert manager.cache("a", cache_version="1", max_age=60).get("k1") is None

    def test_empty_store(self, manager: CacheManager) -> None:
        assert manager.clear_all() == 0

    def test_clear_is_durable(self, settings: CacheSettings, clock) -> None:
        # Given
        with CacheManager("durable", settings=settings, clock=clock) as manager:
            manager.cache("a", cache_version="1", max_age=60).set("k", 1)
            manager.clear_all()

        # When
        with CacheManager("durable", settings=settings, clock=clock) as manager:
            count = manager.store.count()

        # Then
        assert count == 0


class TestCacheInfo:
    def test_reports_counts_per_namespace(self, manager: CacheManager) -> None:
        # Given
        manager.cache("b", cache_version="1", max_age=60).set("k", 1)
        manager.cache("a", cache_version="1", max_age=60).set("k1", 1)
        manager.cache("a", cache_version="1", max_age=60).set("k2", 2)

        # When
        info = manager.cache_info()

        # Then
        assert info == {
            "name": "test",
            "db_path": str(manager.store.db_path),
            "total_entries": 3,
            "caches": {"a": 2, "b": 1},
        }


class TestSingleValue:
    def test_value_property(self, manager: CacheManager) -> None:
        # Given
        token = manager.single_value("token", max_age=60, value_type=str)
        assert token.value is None

        # When
        token.value = "secret"

        # Then
        assert token.value == "secret"
        assert manager.single_value("token", max_age=60, value_type=str).value == "secret"

    def test_clear(self, manager: CacheManager) -> None:
        # Given
        token = manager.single_value("token", max_age=60, value_type=str)
        token.value = "secret"

        # When
        token.clear()

        # Then
        assert token.value is None
        assert manager.cache_info()["total_entries"] == 0

    def test_value_expires(self, manager: CacheManager, clock) -> None:
        # Given
        token = manager.single_value("token", max_age=timedelta(minutes=5), value_type=int)
        token.value = 1

        # When
        clock.advance(minutes=6)

        # Then
        assert token.value is None


class TestThreadConfinement:
    """Only the owning thread may use the manager and its caches."""

    def test_debug_mode_raises(self, debug_manager: CacheManager) -> None:
        # Given
        cache = debug_manager.cache("c", cache_version="1", max_age=60)

        # When
        _, error = run_in_thread(lambda: cache.set("k", "v"))

        # Then
        assert isinstance(error, ConfinementViolation)
        assert error.code == ErrorCode.CONFINEMENT_VIOLATION
        assert error.context.additional_data == {"owner": "MainThread", "actual": "worker"}
        assert cache.get("k") is None

    def test_production_mode_logs_and_proceeds(self, manager: CacheManager, caplog: pytest.LogCaptureFixture) -> None:
        # Given
        cache = manager.cache("c", cache_version="1", max_age=60)
        caplog.set_level(logging.ERROR, logger="shelfcache")

        # When
        _, error = run_in_thread(lambda: cache.set("k", "v"))

        # Then
        assert error is None
        assert "shelfcache threading error" in caplog.text
        assert cache.get("k") == "v"

    def test_drop_mode_skips_operation(self, tmp_path: Path, clock, caplog: pytest.LogCaptureFixture) -> None:
        # Given
        settings = CacheSettings(cache_directory=tmp_path, drop_on_confinement_violation=True)
        manager = CacheManager("drop", settings=settings, clock=clock)
        cache = manager.cache("c", cache_version="1", max_age=60)
        cache.set("k", "v")

        # When
        result, error = run_in_thread(lambda: cache.get("k"))
        _, set_error = run_in_thread(lambda: cache.set("k", "other"))
        cleared, _ = run_in_thread(manager.clear_all)

        # Then
        assert error is None
        assert set_error is None
        assert result is None
        assert cleared == 0
        assert cache.get("k") == "v"
        assert "operation dropped" in caplog.text
        manager.close()

    def test_explicit_owner_thread(self, settings: CacheSettings) -> None:
        # Given
        debug = settings.model_copy(update={"debug": True})
        other = threading.Thread(name="owner")

        # Then
        with pytest.raises(ConfinementViolation):
            CacheManager("owned", owner_thread=other, settings=debug)

    def test_owner_thread_may_differ_from_creator(self, settings: CacheSettings, clock) -> None:
        # Given
        debug = settings.model_copy(update={"debug": True})
        holder: dict[str, CacheManager] = {}

        def create() -> None:
            holder["manager"] = CacheManager("owned", settings=debug, clock=clock)

        run_in_thread(create)
        manager = holder["manager"]

        # When / Then
        with pytest.raises(ConfinementViolation):
            manager.cache("c", cache_version="1", max_age=60)


class TestErrorPolicy:
    def test_handle_error_raises_in_debug(self, debug_manager: CacheManager) -> None:
        original = sqlite3.OperationalError("disk I/O error")

        with pytest.raises(PersistenceError) as exc_info:
            debug_manager.handle_error(original, "fetch_entry")

        assert exc_info.value.__cause__ is original
        assert exc_info.value.context.operation == "fetch_entry"

    def test_handle_error_logs_in_production(self, manager: CacheManager, caplog: pytest.LogCaptureFixture) -> None:
        # When
        manager.handle_error(sqlite3.OperationalError("disk I/O error"), "fetch_entry")

        # Then
        records = [r for r in caplog.records if getattr(r, "operation", None) == "fetch_entry"]
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR
        assert records[0].error_code == "CACHE_READ_FAILED"

    def test_with_error_handling_returns_none_on_failure(self, manager: CacheManager) -> None:
        def fail() -> int:
            raise PersistenceError("rejected")

        assert manager.with_error_handling("op", fail) is None
        assert manager.with_error_handling("op", lambda: 5) == 5

    def test_with_error_handling_never_absorbs_store_open_error(self, manager: CacheManager) -> None:
        def fail() -> None:
            raise StoreOpenError("gone")

        with pytest.raises(StoreOpenError):
            manager.with_error_handling("op", fail)

    def test_failed_write_is_miss_in_production(self, manager: CacheManager, mocker) -> None:
        # Given
        cache = manager.cache("c", cache_version="1", max_age=60)
        mocker.patch.object(manager.store, "upsert", side_effect=PersistenceError("rejected"))

        # When
        cache.set("k", "v")

        # Then
        mocker.stopall()
        assert cache.get("k") is None
        assert not manager.store.has_pending_changes

    def test_failed_write_raises_in_debug(self, debug_manager: CacheManager, mocker) -> None:
        cache = debug_manager.cache("c", cache_version="1", max_age=60)
        mocker.patch.object(debug_manager.store, "upsert", side_effect=PersistenceError("rejected"))

        with pytest.raises(PersistenceError):
            cache.set("k", "v")

    def test_failed_read_is_miss_in_production(self, manager: CacheManager, mocker) -> None:
        # Given
        cache = manager.cache("c", cache_version="1", max_age=60)
        cache.set("k", "v")
        mocker.patch.object(manager.store, "fetch", side_effect=PersistenceError("rejected"))

        # Then
        assert cache.get("k") is None

    def test_store_open_failure_propagates(self, tmp_path: Path, clock, mocker) -> None:
        # Given
        settings = CacheSettings(cache_directory=tmp_path)
        mocker.patch.object(SQLiteEntryStore, "_connect", side_effect=sqlite3.DatabaseError("file is not a database"))
        manager = CacheManager("broken", settings=settings, clock=clock)
        cache = manager.cache("c", cache_version="1", max_age=60)

        # Then
        with pytest.raises(StoreOpenError):
            cache.get("k")
