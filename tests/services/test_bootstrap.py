"""bootstrap: custody settings applied to logging, database and ORM guards."""

import logging

import pytest
from sqlalchemy import select

from tests.conftest import ALICE, CONTROLLER, T0, TOKEN
from vesting_config.schema import CustodySettings
from vesting_kernel.db import engine as kernel_db
from vesting_kernel.db.engine import get_engine, session_scope
from vesting_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from vesting_kernel.domain.clock import DeterministicClock
from vesting_kernel.domain.dtos import Caller
from vesting_kernel.exceptions import ImmutabilityViolationError
from vesting_kernel.logging_config import configure_logging, reset_logging
from vesting_kernel.models.vesting_schedule import VestingScheduleModel
from vesting_services.bootstrap import bootstrap
from vesting_services.value_ledger import InMemoryValueLedger
from vesting_services.wiring import build_engine


@pytest.fixture
def isolated_runtime(monkeypatch):
    """Let bootstrap replace the module-level engine and logging, then restore them."""
    monkeypatch.setattr(kernel_db, "_engine", kernel_db._engine)
    monkeypatch.setattr(kernel_db, "_SessionFactory", kernel_db._SessionFactory)
    reset_logging()
    yield
    if kernel_db._engine is not None:
        kernel_db._engine.dispose()
    reset_logging()
    configure_logging(level=logging.DEBUG)
    register_immutability_listeners()


def _settings(tmp_path, **overrides) -> CustodySettings:
    fields = dict(
        config_id="BOOTSTRAP",
        version=1,
        controllers=(CONTROLLER,),
        database_url=f"sqlite:///{tmp_path / 'custody.db'}",
    )
    fields.update(overrides)
    return CustodySettings(**fields)


def _ledger() -> InMemoryValueLedger:
    ledger = InMemoryValueLedger()
    ledger.mint(CONTROLLER, TOKEN, 1000)
    ledger.approve(CONTROLLER, TOKEN, 1000)
    return ledger


class TestBootstrap:
    @pytest.mark.parametrize("level, expected", [("DEBUG", logging.DEBUG), ("WARNING", logging.WARNING)])
    def test_log_level_from_settings(self, tmp_path, isolated_runtime, level, expected):
        bootstrap(_settings(tmp_path, log_level=level))

        assert logging.getLogger("vesting_kernel").level == expected

    def test_engine_bound_to_configured_url(self, tmp_path, isolated_runtime):
        settings = _settings(tmp_path)
        ledger = _ledger()

        engine = bootstrap(settings)

        assert get_engine() is engine
        assert engine.url.database.endswith("custody.db")
        with session_scope() as session:
            build_engine(session, settings, ledger, DeterministicClock(T0)).create_schedule(
                Caller(CONTROLLER), ALICE, TOKEN, T0, 100, 0, 1000, True
            )
        with session_scope() as session:
            assert build_engine(session, settings, ledger, DeterministicClock(T0)).schedule_count(ALICE) == 1

    def test_registers_immutability_listeners(self, tmp_path, isolated_runtime):
        settings = _settings(tmp_path)
        unregister_immutability_listeners()

        bootstrap(settings)

        with session_scope() as session:
            build_engine(session, settings, _ledger(), DeterministicClock(T0)).create_schedule(
                Caller(CONTROLLER), ALICE, TOKEN, T0, 100, 0, 1000, True
            )
        with pytest.raises(ImmutabilityViolationError):
            with session_scope() as session:
                session.delete(session.execute(select(VestingScheduleModel)).scalar_one())
                session.flush()

    def test_defaults_to_active_config(self, isolated_runtime):
        engine = bootstrap()

        assert engine.url.database == ":memory:"
        assert logging.getLogger("vesting_kernel").level == logging.INFO
