#!/usr/bin/env python3
"""
Generation check state machine.

A draft walks the checks in order. Each check may send the article back for
one corrective rewrite; a check that fails again after its rewrite ends the
run in FAILED.
"""

from dataclasses import dataclass
from enum import Enum


class GenerationState(Enum):
    DRAFT = 'draft'
    CHECK_CITATIONS = 'check_citations'
    CHECK_LINK_COUNT = 'check_link_count'
    CHECK_LINK_CLUSTERING = 'check_link_clustering'
    CHECK_WORD_COUNT = 'check_word_count'
    DONE = 'done'
    FAILED = 'failed'

    @property
    def is_check(self) -> bool:
        return self in CHECK_ORDER

    @property
    def is_terminal(self) -> bool:
        return self in (GenerationState.DONE, GenerationState.FAILED)


CHECK_ORDER = (
    GenerationState.CHECK_CITATIONS,
    GenerationState.CHECK_LINK_COUNT,
    GenerationState.CHECK_LINK_CLUSTERING,
    GenerationState.CHECK_WORD_COUNT,
)

ADVANCE = 'advance'
RETRY = 'retry'
FAIL = 'fail'


@dataclass(frozen=True)
class Transition:
    next_state: GenerationState
    action: str
    reason: str = ''


def _after(state: GenerationState) -> GenerationState:
    position = CHECK_ORDER.index(state)
    if position + 1 < len(CHECK_ORDER):
        return CHECK_ORDER[position + 1]
    return GenerationState.DONE


def next_transition(state: GenerationState, passed: bool = True, retry_used: bool = False) -> Transition:
    """
    Decide where the loop goes after evaluating ``state``.

    Args:
        state: Current state
        passed: Whether the current check passed (ignored for DRAFT)
        retry_used: Whether this check already spent its corrective rewrite

    Returns:
        Transition naming the next state and the action the loop must take.
        A retry rewrites the draft and restarts at the first check.

    Raises:
        ValueError: If called on a terminal state
    """
    if state.is_terminal:
        raise ValueError(f"No transition out of terminal state {state.name}")

    if state is GenerationState.DRAFT:
        return Transition(CHECK_ORDER[0], ADVANCE, 'draft ready')

    if passed:
        return Transition(_after(state), ADVANCE, f"{state.value} passed")
    if not retry_used:
        return Transition(CHECK_ORDER[0], RETRY, f"{state.value} failed, rewriting")
    return Transition(GenerationState.FAILED, FAIL, f"{state.value} failed after retry")
