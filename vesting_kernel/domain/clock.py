"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock so that domain and service code never call
    ``time.time()`` directly.  Vesting time is measured in whole seconds,
    so every clock returns an ``int`` instant.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Invariants enforced:
    (none directly -- enables deterministic replay of vesting computations)

Failure modes:
    - SequentialClock raises ValueError if constructed with no instants.
    - DeterministicClock.advance() raises ValueError on a negative step
      (vesting time never moves backwards).

Audit relevance:
    Every ``now`` used for a vesting computation and every audit record
    timestamp is traceable to an injected Clock instance.
"""

import time
from abc import ABC, abstractmethod
from typing import Iterator


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        All services that need the current instant receive a Clock via
        constructor injection.

    Guarantees:
        - ``now()`` returns an integer count of seconds since the epoch.
    """

    @abstractmethod
    def now(self) -> int:
        """Get the current instant in seconds."""
        ...


class SystemClock(Clock):
    """
    Production clock backed by the system wall clock.

    Non-goals:
        Not suitable for deterministic replay or testing.
    """

    def now(self) -> int:
        return int(time.time())


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
    """

    DEFAULT_EPOCH = 1_704_110_400  # 2024-01-01T12:00:00Z

    def __init__(self, fixed_time: int | None = None):
        """
        Initialize with optional fixed instant.

        Args:
            fixed_time: Starting instant in seconds. If None, uses
                ``DEFAULT_EPOCH``.
        """
        self._fixed_time = self.DEFAULT_EPOCH if fixed_time is None else fixed_time
        self._advance_seconds = 0

    def now(self) -> int:
        return self._fixed_time + self._advance_seconds

    def set_time(self, instant: int) -> None:
        """Set the clock to a specific instant."""
        self._fixed_time = instant
        self._advance_seconds = 0

    def advance(self, seconds: int = 1) -> None:
        """Advance the clock by the specified seconds."""
        if seconds < 0:
            raise ValueError("DeterministicClock cannot move backwards")
        self._advance_seconds += seconds


class SequentialClock(Clock):
    """
    Clock that returns instants from a predefined list.

    Contract:
        Initialized with a non-empty list of instants.  After exhaustion,
        repeats the last value.
    """

    def __init__(self, instants: list[int]):
        if not instants:
            raise ValueError("SequentialClock requires at least one instant")
        self._instants: Iterator[int] = iter(instants)
        self._last: int = instants[0]

    def now(self) -> int:
        try:
            self._last = next(self._instants)
        except StopIteration:
            pass
        return self._last
