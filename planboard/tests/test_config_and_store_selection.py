"""
Tests for configuration validation and plan store selection.
"""

import logging

import pytest

from planboard.core.config import Settings, validate_config
from planboard.core.database import dispose_engine
from planboard.features.plans.store import (
    InMemoryPlanStore,
    get_plan_store,
    reset_plan_store,
    select_plan_store,
)
from planboard.features.plans.store_sql import SqlPlanStore


@pytest.fixture
def fresh_engine():
    dispose_engine()
    yield
    dispose_engine()


def test_default_config_is_valid():
    cfg = Settings(_env_file=None, PLAN_STORE="memory")
    assert validate_config(strict=True, settings_obj=cfg) is True


def test_sql_store_without_database_url_strict():
    cfg = Settings(_env_file=None, PLAN_STORE="sql", DATABASE_URL=None, TEST_DATABASE_URL=None)
    with pytest.raises(RuntimeError) as exc:
        validate_config(strict=True, settings_obj=cfg)
    assert "DATABASE_URL" in str(exc.value)


def test_unknown_store_mode_warns(caplog):
    cfg = Settings(_env_file=None, PLAN_STORE="mongo")
    with caplog.at_level(logging.WARNING, logger="planboard"):
        assert validate_config(strict=False, settings_obj=cfg) is True
    assert any("PLAN_STORE" in r.getMessage() for r in caplog.records)


def test_memory_store_in_production_warns(caplog):
    cfg = Settings(_env_file=None, ENV="production", PLAN_STORE="memory")
    with caplog.at_level(logging.WARNING, logger="planboard"):
        validate_config(strict=False, settings_obj=cfg)
    assert any("not durable" in r.getMessage() for r in caplog.records)


def test_memory_mode(monkeypatch):
    monkeypatch.setenv("PLAN_STORE", "memory")
    assert isinstance(select_plan_store(), InMemoryPlanStore)


def test_sql_mode_uses_database(monkeypatch, fresh_engine):
    monkeypatch.setenv("PLAN_STORE", "sql")
    monkeypatch.setenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    store = select_plan_store()
    assert isinstance(store, SqlPlanStore)
    assert store.find_by_id("anything") is None


def test_auto_mode_without_database_falls_back(monkeypatch, fresh_engine):
    monkeypatch.setenv("PLAN_STORE", "auto")
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setattr("planboard.core.database.settings.DATABASE_URL", None)
    assert isinstance(select_plan_store(), InMemoryPlanStore)


def test_auto_mode_with_database(monkeypatch, fresh_engine):
    monkeypatch.setenv("PLAN_STORE", "auto")
    monkeypatch.setenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    assert isinstance(select_plan_store(), SqlPlanStore)


def test_singleton_is_reused(monkeypatch):
    monkeypatch.setenv("PLAN_STORE", "memory")
    reset_plan_store()
    first = get_plan_store()
    assert get_plan_store() is first
    reset_plan_store()
    assert get_plan_store() is not first
