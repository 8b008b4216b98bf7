"""
vesting_services.authority -- Controller role check at the engine boundary.

Responsibility:
    Answer the kernel's ``AuthorityCheck`` question (is this identity a
    controller?) from the configured controller set.

Architecture position:
    Services layer.  Built from ``CustodySettings`` by ``wiring``.

Invariants:
    - Kernel remains identity-agnostic; this module does not authenticate
      anyone (the caller supplies an already-authenticated identity).
    - Fail-closed: an empty controller set authorizes nobody.
"""

from __future__ import annotations

from collections.abc import Iterable

from vesting_kernel.logging_config import get_logger

logger = get_logger("services.authority")


class ControllerAuthority:
    """``AuthorityCheck`` backed by a fixed set of controller identities."""

    def __init__(self, controllers: Iterable[str]):
        self._controllers = frozenset(c for c in controllers if c and c.strip())

    @property
    def controllers(self) -> frozenset[str]:
        return self._controllers

    def is_controller(self, identity: str) -> bool:
        allowed = identity in self._controllers
        if not allowed:
            logger.info("controller_check_denied", extra={"identity": identity})
        return allowed
