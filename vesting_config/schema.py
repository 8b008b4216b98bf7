"""
CustodySettings schema.

Frozen runtime view of a custody configuration file.  The YAML file is
the human-authored source artifact; ``CustodySettings`` is what the rest
of the system receives from ``get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class CustodySettings:
    """Validated custody configuration."""

    config_id: str
    version: int
    controllers: tuple[str, ...]
    database_url: str
    log_level: str = "INFO"
    verify_solvency: bool = True
    batch_payouts_per_asset: bool = False
    audit_enabled: bool = True
    checksum: str = ""

