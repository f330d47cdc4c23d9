"""Mutation lifecycle orchestration.

- mutation: single-shot lifecycle operations (submit, poll, validate, formalize, cancel)
- polling: caller-side loop with interval, budget and cancellation
"""

from rvo_connector.orchestrators.mutation import MutationOrchestrator
from rvo_connector.orchestrators.polling import (
    PollCancelledError,
    PollTimeoutError,
    iter_process_status,
    wait_for_terminal_status,
)

__all__ = [
    "MutationOrchestrator",
    "PollCancelledError",
    "PollTimeoutError",
    "iter_process_status",
    "wait_for_terminal_status",
]
