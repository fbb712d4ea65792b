# planboard/conftest.py
import os
import sys
from pathlib import Path

import pytest

# Add repository root to PYTHONPATH
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

# Tests never touch a real database unless they ask for one
os.environ.setdefault("PLAN_STORE", "memory")

from planboard.features.plans.store import InMemoryPlanStore, reset_plan_store, set_plan_store  # noqa: E402
from planboard.models.plan import Plan  # noqa: E402
from planboard.models.user import CurrentUser  # noqa: E402


@pytest.fixture(scope="function", autouse=True)
def memory_store():
    """
    Fresh in-memory plan store for every test.

    Installed as the process-wide store so the service singleton and the
    API both see it.
    """
    store = InMemoryPlanStore()
    set_plan_store(store)
    yield store
    reset_plan_store()


@pytest.fixture(scope="function")
def sql_store(tmp_path):
    """
    SqlPlanStore over a private SQLite file.

    A file rather than :memory: so every session gets its own connection,
    as it would against a server database. Tables are created before the
    test and the engine is disposed after.
    """
    from planboard.core.database import dispose_engine, drop_all_tables, init_engine
    from planboard.features.plans.store_sql import SqlPlanStore

    dispose_engine()
    init_engine(f"sqlite:///{tmp_path / 'plans.db'}")
    store = SqlPlanStore()
    store.ensure_schema()
    yield store
    drop_all_tables()
    dispose_engine()


@pytest.fixture(params=["memory", "sql"])
def any_store(request):
    """Run a test against both store implementations."""
    if request.param == "memory":
        return request.getfixturevalue("memory_store")
    return request.getfixturevalue("sql_store")


@pytest.fixture
def owner():
    return CurrentUser(id="user-owner", name="Owner")


@pytest.fixture
def other_user():
    return CurrentUser(id="user-other", name="Other")


@pytest.fixture
def make_plan():
    """Build a Plan from keyword overrides on top of a valid baseline."""

    def _make(**overrides):
        data = {
            "stageName": "1-7",
            "document": {"title": "Easy clear", "details": "Low rarity only"},
            "operators": [{"name": "Amiya"}],
            "actions": [{"type": "Deploy", "location": [5, 3]}],
        }
        data.update(overrides)
        return Plan.model_validate(data)

    return _make
