"""Tests for background-work guards and operation records."""

import logging
import threading

import pytest

from filer.guard import BackgroundWorkGuard, InFlightGuard, NullGuard
from filer.operations import Operation, OperationKind, OperationState


class TestInFlightGuard:
    """Tests for InFlightGuard."""

    def test_tokens_are_unique(self):
        guard = InFlightGuard()
        tokens = {guard.begin() for _ in range(10)}

        assert len(tokens) == 10
        assert guard.in_flight == 10

    def test_overlapping_tokens(self):
        guard = InFlightGuard()
        first = guard.begin()
        second = guard.begin()

        guard.end(first)
        assert guard.in_flight == 1
        guard.end(second)
        assert guard.in_flight == 0

    def test_wait_idle(self):
        guard = InFlightGuard()
        token = guard.begin()
        assert guard.wait_idle(timeout=0.01) is False

        timer = threading.Timer(0.05, guard.end, args=(token,))
        timer.start()
        assert guard.wait_idle(timeout=5) is True
        timer.join()

    def test_begin_and_end_from_many_threads(self):
        guard = InFlightGuard()

        def work():
            for _ in range(100):
                guard.end(guard.begin())

        threads = [threading.Thread(target=work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert guard.in_flight == 0

    def test_unknown_token_logged(self, caplog):
        guard = InFlightGuard()

        with caplog.at_level(logging.WARNING, logger="filer"):
            guard.end(42)

        assert "unknown background work token" in caplog.text

    def test_satisfies_protocol(self):
        assert isinstance(InFlightGuard(), BackgroundWorkGuard)
        assert isinstance(NullGuard(), BackgroundWorkGuard)


class TestOperation:
    """Tests for Operation state transitions."""

    def test_forward_transitions(self):
        op = Operation(OperationKind.SAVE, "pic.png")
        assert op.state is OperationState.PENDING

        op.advance(OperationState.RESOLVING)
        op.advance(OperationState.ALLOCATING)
        op.advance(OperationState.PERFORMING)
        op.complete(True)

        assert op.state is OperationState.COMPLETED
        assert op.succeeded is True

    def test_allocating_is_optional(self):
        op = Operation(OperationKind.DELETE)
        op.advance(OperationState.RESOLVING)
        op.advance(OperationState.PERFORMING)
        op.complete(False, "gone")

        assert op.succeeded is False
        assert op.error == "gone"

    def test_cannot_go_backwards(self):
        op = Operation(OperationKind.MOVE)
        op.advance(OperationState.PERFORMING)

        with pytest.raises(RuntimeError):
            op.advance(OperationState.RESOLVING)

    def test_reach_skips_earlier_states(self):
        op = Operation(OperationKind.MOVE)
        op.advance(OperationState.PERFORMING)

        op.reach(OperationState.RESOLVING)

        assert op.state is OperationState.PERFORMING

    def test_no_transition_after_completion(self):
        op = Operation(OperationKind.READ)
        op.complete(True)

        with pytest.raises(RuntimeError):
            op.complete(False)

    def test_ids_are_unique(self):
        assert Operation(OperationKind.SAVE).id != Operation(OperationKind.SAVE).id
