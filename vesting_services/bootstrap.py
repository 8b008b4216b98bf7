"""
vesting_services.bootstrap -- Process start-up for the custody kernel.

Responsibility:
    Applies a ``CustodySettings`` to the process once, before any engine is
    built: configures structured logging at the configured level,
    initializes the database engine from the configured URL, creates the
    schema, and registers the ORM immutability listeners.  Without the
    listeners the append-only and monotonicity guards are not enforced.

Usage::

    settings = get_active_config()
    bootstrap(settings)
    with session_scope() as session:
        engine = build_engine(session, settings, ledger)
        engine.claim(caller)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from vesting_config import get_active_config
from vesting_config.schema import CustodySettings
from vesting_kernel.db.engine import create_tables, init_engine_from_url
from vesting_kernel.db.immutability import register_immutability_listeners
from vesting_kernel.logging_config import configure_logging, get_logger

logger = get_logger("services.bootstrap")


def bootstrap(
    settings: CustodySettings | None = None,
    *,
    create_schema: bool = True,
) -> Engine:
    """
    Bring up logging, database and ORM guards from ``settings``.

    Args:
        settings: Custody settings; the active config set when omitted.
        create_schema: Create missing tables (existing tables are kept).

    Returns:
        The initialized SQLAlchemy engine, also installed as the kernel's
        module-level engine for ``get_session`` / ``session_scope``.
    """
    if settings is None:
        settings = get_active_config()

    # Logging first: init_engine_from_url would otherwise configure it at INFO
    configure_logging(level=settings.log_level)
    engine = init_engine_from_url(settings.database_url)
    if create_schema:
        create_tables()
    register_immutability_listeners()

    logger.info(
        "custody_bootstrapped",
        extra={
            "config_set_id": settings.config_id,
            "config_set_version": settings.version,
            "dialect": engine.dialect.name,
            "log_level": settings.log_level,
        },
    )
    return engine
