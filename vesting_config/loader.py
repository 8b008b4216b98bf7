"""
Configuration Loader (``vesting_config.loader``).

Responsibility
--------------
Loads a custody configuration YAML file and parses it into a raw
section dict, then into a ``CustodySettings``.  This is internal tooling;
the single public entry point for runtime config is
``vesting_config.get_active_config()``.

Invariants enforced
-------------------
* Required keys are never silently defaulted: ``config_id``, ``version``
  and ``custody.controllers`` must be present.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed source, independent of key order and YAML formatting.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or mistyped fields -> ``ValueError`` listing every problem
  (see ``validate_settings``).
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from vesting_config.schema import LOG_LEVELS, CustodySettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    return value if isinstance(value, dict) else {}


def validate_settings(data: dict[str, Any]) -> list[str]:
    """
    Structural validation of a parsed configuration dict.

    Returns:
        Every problem found; an empty list means ``data`` is valid.
    """
    errors: list[str] = []

    config_id = data.get("config_id")
    if not isinstance(config_id, str) or not config_id.strip():
        errors.append("config_id: required non-empty string")

    version = data.get("version")
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        errors.append("version: required positive integer")

    for name in ("custody", "database", "logging"):
        if name in data and not isinstance(data[name], dict):
            errors.append(f"{name}: must be a mapping")

    custody = _section(data, "custody")
    controllers = custody.get("controllers")
    if not isinstance(controllers, list) or not controllers:
        errors.append("custody.controllers: required non-empty list")
    else:
        for i, identity in enumerate(controllers):
            if not isinstance(identity, str) or not identity.strip():
                errors.append(f"custody.controllers[{i}]: must be a non-empty string")
        if len(set(controllers)) != len(controllers):
            errors.append("custody.controllers: duplicate identities")

    for flag in ("verify_solvency", "batch_payouts_per_asset", "audit_enabled"):
        if flag in custody and not isinstance(custody[flag], bool):
            errors.append(f"custody.{flag}: must be a boolean")

    url = _section(data, "database").get("url")
    if not isinstance(url, str) or not url.strip():
        errors.append("database.url: required non-empty string")

    level = _section(data, "logging").get("level", "INFO")
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        errors.append(f"logging.level: must be one of {', '.join(LOG_LEVELS)}")

    return errors


def parse_settings(data: dict[str, Any]) -> CustodySettings:
    """
    Build ``CustodySettings`` from an already-validated dict.

    Preconditions:
        - ``validate_settings(data)`` returned no errors.
    """
    custody = _section(data, "custody")
    return CustodySettings(
        config_id=data["config_id"],
        version=data["version"],
        controllers=tuple(custody["controllers"]),
        database_url=_section(data, "database")["url"],
        log_level=str(_section(data, "logging").get("level", "INFO")).upper(),
        verify_solvency=custody.get("verify_solvency", True),
        batch_payouts_per_asset=custody.get("batch_payouts_per_asset", False),
        audit_enabled=custody.get("audit_enabled", True),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> CustodySettings:
    """
    Load, validate and parse one configuration file.

    Raises:
        FileNotFoundError: if ``path`` does not exist.
        ValueError: listing every validation problem.
    """
    data = load_yaml_file(path)
    errors = validate_settings(data)
    if errors:
        raise ValueError(
            f"Configuration validation failed for {path}:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )
    return parse_settings(data)
