"""
Test case orchestration state machine definitions.

This module defines the canonical harness states and the allowed transitions
between them. It is passive and validation-only: the orchestrator reports an
unexpected transition but never refuses one, because cleanup must still run.
"""

from __future__ import annotations

from enum import Enum


class HarnessState(str, Enum):
    IDLE = "idle"
    SERVER_READY = "server_ready"
    JOB_SUBMITTED = "job_submitted"
    INPUT_SENT = "input_sent"
    AWAITING_SINK = "awaiting_sink"
    COMPARED = "compared"
    TORN_DOWN = "torn_down"


# The only state from which a run exits.
HARNESS_TERMINAL_STATES: frozenset[HarnessState] = frozenset(
    {
        HarnessState.TORN_DOWN,
    }
)


# Allowed harness state transitions.
#
# Key   : previous state (or None before the run started)
# Value : set of allowed next states
#
# Notes:
# - Any failure short-circuits to TORN_DOWN, so every non-terminal state
#   lists it as a successor.
HARNESS_ALLOWED_TRANSITIONS: dict[HarnessState | None, frozenset[HarnessState]] = {
    None: frozenset({HarnessState.IDLE}),

    HarnessState.IDLE: frozenset(
        {
            HarnessState.SERVER_READY,
            HarnessState.TORN_DOWN,
        }
    ),

    HarnessState.SERVER_READY: frozenset(
        {
            HarnessState.JOB_SUBMITTED,
            HarnessState.TORN_DOWN,
        }
    ),

    HarnessState.JOB_SUBMITTED: frozenset(
        {
            HarnessState.INPUT_SENT,
            HarnessState.TORN_DOWN,
        }
    ),

    HarnessState.INPUT_SENT: frozenset(
        {
            HarnessState.AWAITING_SINK,
            HarnessState.TORN_DOWN,
        }
    ),

    HarnessState.AWAITING_SINK: frozenset(
        {
            HarnessState.COMPARED,
            HarnessState.TORN_DOWN,
        }
    ),

    HarnessState.COMPARED: frozenset(
        {
            HarnessState.TORN_DOWN,
        }
    ),
}


def is_terminal_state(state: HarnessState) -> bool:
    """Return True if the given state is terminal."""
    return state in HARNESS_TERMINAL_STATES


def is_valid_transition(prev_state: HarnessState | None, next_state: HarnessState) -> bool:
    """Return True if the transition prev_state -> next_state is allowed."""
    allowed = HARNESS_ALLOWED_TRANSITIONS.get(prev_state)
    if allowed is None:
        return False
    return next_state in allowed
