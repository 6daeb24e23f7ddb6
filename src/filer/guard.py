"""Background-work guards.

A guard keeps the host process from going away while asynchronous file
operations are still in flight. The store calls ``begin()`` before it
dispatches an operation and ``end(token)`` once the completion has been
delivered on the result context.
"""

import itertools
import logging
import threading
from typing import Any, Optional, Set

from typing_extensions import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class BackgroundWorkGuard(Protocol):
    """Token-based guard interface.

    Implementations must be callable from any thread and must allow any
    number of overlapping tokens.
    """

    def begin(self) -> Any: ...

    def end(self, token: Any) -> None: ...


class InFlightGuard:
    """Tracks in-flight operations so shutdown can wait for them.

    Examples:
        >>> guard = InFlightGuard()
        >>> token = guard.begin()
        >>> guard.in_flight
        1
        >>> guard.end(token)
        >>> guard.wait_idle(timeout=1)
        True
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._active: Set[int] = set()
        self._condition = threading.Condition()

    def begin(self) -> int:
        with self._condition:
            token = next(self._counter)
            self._active.add(token)
            return token

    def end(self, token: int) -> None:
        with self._condition:
            if token not in self._active:
                logger.warning(f"Ending unknown background work token: {token}")
                return
            self._active.remove(token)
            if not self._active:
                self._condition.notify_all()

    @property
    def in_flight(self) -> int:
        with self._condition:
            return len(self._active)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no work is in flight.

        Args:
            timeout: Seconds to wait, or None to wait forever

        Returns:
            True if idle, False if the timeout expired first
        """
        with self._condition:
            return self._condition.wait_for(lambda: not self._active, timeout=timeout)


class NullGuard:
    """Guard that does nothing, for hosts with no suspension model."""

    def begin(self) -> None:
        return None

    def end(self, token: Any) -> None:
        pass
