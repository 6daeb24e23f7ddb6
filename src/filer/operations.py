"""Operation records for asynchronous store calls.

An ``Operation`` lives only for the duration of one call chain. It moves
forward through ``OperationState`` and ends in ``COMPLETED`` with either a
success or a failure; there is no retry state.
"""

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

_operation_ids = itertools.count(1)


class OperationKind(Enum):
    RESOLVE_PATH = "resolve_path"
    ALLOCATE = "allocate"
    SAVE = "save"
    MOVE = "move"
    DELETE = "delete"
    DELETE_CATEGORY = "delete_category"
    READ = "read"


class OperationState(Enum):
    """Pipeline stages, in order."""

    PENDING = 0
    RESOLVING = 1
    ALLOCATING = 2
    PERFORMING = 3
    COMPLETED = 4


@dataclass
class Operation:
    """State of one asynchronous store call.

    Attributes:
        kind: What the call does
        description: Short human-readable target (category, path)
        state: Current pipeline stage
        succeeded: Outcome once completed, None before
        error: Failure description once completed with a failure
    """

    kind: OperationKind
    description: str = ""
    state: OperationState = OperationState.PENDING
    succeeded: Optional[bool] = None
    error: Optional[str] = None
    id: int = field(default_factory=lambda: next(_operation_ids))

    def advance(self, state: OperationState) -> None:
        """Move to a later pipeline stage.

        Raises:
            RuntimeError: If the state would move backwards or the
                operation already completed
        """
        if self.state is OperationState.COMPLETED:
            raise RuntimeError(f"Operation {self.id} already completed")
        if state.value < self.state.value:
            raise RuntimeError(
                f"Operation {self.id} cannot go from {self.state.name} to {state.name}"
            )
        logger.debug(f"{self} -> {state.name}")
        self.state = state

    def reach(self, state: OperationState) -> None:
        """Advance to ``state`` unless the operation is already there or past it."""
        if state.value > self.state.value:
            self.advance(state)

    def complete(self, succeeded: bool, error: Optional[str] = None) -> None:
        self.advance(OperationState.COMPLETED)
        self.succeeded = succeeded
        self.error = error

    def __str__(self) -> str:
        return f"{self.kind.value}#{self.id}({self.description})"
