"""
vesting_config -- single public entrypoint for custody configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``CustodySettings``.

Architecture position:
    Configuration -- sits above ``vesting_kernel`` and below
    ``vesting_services``.  The kernel MUST NEVER import from
    ``vesting_config``; ``vesting_services.wiring`` translates settings
    into kernel constructor arguments.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Deterministic identity: the same source always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- validation failures, all listed in one message.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``VESTING_CONFIG_TRACE`` log entry with config_id, version, checksum
    and controller count, tying every operation back to the configuration
    that authorized it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from vesting_config.loader import load_settings
from vesting_config.schema import CustodySettings

_logger = logging.getLogger("vesting_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> CustodySettings:
    """The ONLY public configuration entrypoint.

    Guarantees:
        - The returned settings passed validation.
        - A ``VESTING_CONFIG_TRACE`` log entry is emitted on every
          successful call.

    Non-goals:
        - Does NOT cache settings across calls.

    Args:
        config_path: Override path to a configuration file.  Defaults to
            vesting_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If configuration validation fails.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    settings = load_settings(path)

    _logger.info(
        "VESTING_CONFIG_TRACE",
        extra={
            "trace_type": "VESTING_CONFIG_TRACE",
            "config_set_id": settings.config_id,
            "config_set_version": settings.version,
            "checksum": settings.checksum,
            "controller_count": len(settings.controllers),
            "verify_solvency": settings.verify_solvency,
            "batch_payouts_per_asset": settings.batch_payouts_per_asset,
        },
    )
    return settings


__all__ = [
    "CustodySettings",
    "get_active_config",
]
