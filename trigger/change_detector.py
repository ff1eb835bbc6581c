"""
Change detection over an append-only identifier list.

This module provides:
- Position-based diffing of a fresh list against the observed count
- Baseline creation from the first successful poll
- Re-baselining when the source list shrinks

Recency is defined by index, not by identifier value: the source is assumed
to only ever append, so everything past the previously observed length is new.
"""

from typing import List, Sequence, Tuple

import structlog

from trigger.models import DiffResult, ObservedState

logger = structlog.get_logger(__name__)


def diff(previous_count: int, current: Sequence[int]) -> DiffResult:
    """
    Compare a fresh identifier list against the previously observed length.

    Args:
        previous_count: Length of the list at the last successful poll
        current: Full identifier list from this poll

    Returns:
        DiffResult whose ``newly_added`` is ``current[previous_count:]`` when
        the list grew and empty otherwise. A shorter list re-baselines the
        count down to ``len(current)``.
    """
    if previous_count < 0:
        raise ValueError(f"previous_count must be non-negative, got {previous_count}")

    current_count = len(current)
    newly_added: List[int] = []
    if current_count > previous_count:
        newly_added = list(current[previous_count:])

    return DiffResult(
        previous_count=previous_count,
        new_count=current_count,
        newly_added=newly_added,
        rebaselined=current_count < previous_count,
    )


class ChangeDetector:
    """Tracks the observed identifier count across polls."""

    def __init__(self):
        self.logger = logger.bind(component="change_detector")

    def baseline(self, ids: Sequence[int]) -> ObservedState:
        """Establish the initial state. The baseline never yields new identifiers."""
        state = ObservedState(count=len(ids))
        self.logger.info("Baseline established", count=state.count)
        return state

    def detect(self, state: ObservedState, ids: Sequence[int]) -> Tuple[ObservedState, DiffResult]:
        """
        Diff a successful poll against the observed state.

        Args:
            state: State from the previous successful poll
            ids: Identifier list from this poll

        Returns:
            The advanced state and the diff that produced it
        """
        result = diff(state.count, ids)

        if result.rebaselined:
            self.logger.warning(
                "Source list shrank, re-baselining",
                previous_count=result.previous_count,
                new_count=result.new_count,
            )
        else:
            self.logger.info(
                "New count",
                count=result.new_count,
                new_items=len(result.newly_added),
            )

        return state.advance(result.new_count), result
