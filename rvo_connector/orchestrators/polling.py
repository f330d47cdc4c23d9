"""Caller-side polling of a mutation ticket.

The orchestrator answers one status query per call; this module supplies
the loop around it. Waiting happens on a caller-supplied
``threading.Event`` so another thread can cancel a poll in progress
without waiting for the current interval to run out.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

from rvo_connector.core.exceptions import PermanentError, TransientError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from rvo_connector.models.mutation import ProcessStatus
    from rvo_connector.orchestrators.mutation import MutationOrchestrator

logger = logging.getLogger("rvo_connector.orchestrators.polling")

DEFAULT_POLL_INTERVAL_S = 5.0
DEFAULT_POLL_TIMEOUT_S = 600.0  # 10 minutes


class PollTimeoutError(TransientError):
    """The ticket did not reach a terminal status within the budget.

    Attributes:
        ticket_id: The ticket being polled.
        timeout_s: The wall-clock budget, in seconds.
        last_status: The last status seen, if any.
    """

    default_stage = "poll"
    default_code = "POLL_TIMEOUT"

    def __init__(
        self, ticket_id: str, timeout_s: float, last_status: ProcessStatus | None = None
    ) -> None:
        self.ticket_id = ticket_id
        self.timeout_s = timeout_s
        self.last_status = last_status
        super().__init__(f"Ticket {ticket_id} not terminal after {timeout_s:.0f}s")

    def details(self) -> dict[str, object]:
        return {
            "ticket_id": self.ticket_id,
            "timeout_s": self.timeout_s,
            "last_code": self.last_status.code if self.last_status else None,
        }


class PollCancelledError(PermanentError):
    """Polling was stopped through the cancellation event."""

    default_stage = "poll"
    default_code = "POLL_CANCELLED"

    def __init__(self, ticket_id: str, last_status: ProcessStatus | None = None) -> None:
        self.ticket_id = ticket_id
        self.last_status = last_status
        super().__init__(f"Polling of ticket {ticket_id} was cancelled")

    def details(self) -> dict[str, object]:
        return {
            "ticket_id": self.ticket_id,
            "last_code": self.last_status.code if self.last_status else None,
        }


def iter_process_status(
    orchestrator: MutationOrchestrator,
    ticket_id: str,
    *,
    interval_s: float = DEFAULT_POLL_INTERVAL_S,
    timeout_s: float = DEFAULT_POLL_TIMEOUT_S,
    cancel_event: threading.Event | None = None,
    terminal_codes: frozenset[str] | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> Iterator[ProcessStatus]:
    """Yield successive statuses of *ticket_id*, ending after a terminal one.

    Args:
        orchestrator: Orchestrator used for each single poll.
        ticket_id: Ticket to poll.
        interval_s: Delay between polls, in seconds.
        timeout_s: Wall-clock budget for the whole loop, in seconds.
        cancel_event: Set it to stop polling; a fresh event is used if omitted.
        terminal_codes: Raw service codes that end polling. Defaults to
            ``ProcessStatus.is_terminal()`` without codes (state based).
        clock: Monotonic clock, in seconds.

    Raises:
        PollCancelledError: If *cancel_event* is set before or while waiting.
        PollTimeoutError: If the budget runs out before a terminal status.
    """
    event = cancel_event if cancel_event is not None else threading.Event()
    deadline = clock() + timeout_s
    last: ProcessStatus | None = None
    attempt = 0

    while True:
        if event.is_set():
            raise PollCancelledError(ticket_id, last)

        attempt += 1
        last = orchestrator.poll(ticket_id)
        yield last

        if last.is_terminal(terminal_codes):
            logger.info(
                "polling finished | ticket_id=%s | code=%s | attempts=%d",
                ticket_id,
                last.code,
                attempt,
            )
            return

        remaining = deadline - clock()
        if remaining <= 0:
            raise PollTimeoutError(ticket_id, timeout_s, last)
        if event.wait(min(interval_s, remaining)):
            raise PollCancelledError(ticket_id, last)
        if clock() >= deadline:
            raise PollTimeoutError(ticket_id, timeout_s, last)


def wait_for_terminal_status(
    orchestrator: MutationOrchestrator,
    ticket_id: str,
    *,
    interval_s: float = DEFAULT_POLL_INTERVAL_S,
    timeout_s: float = DEFAULT_POLL_TIMEOUT_S,
    cancel_event: threading.Event | None = None,
    terminal_codes: frozenset[str] | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> ProcessStatus:
    """Poll until terminal and return the final status.

    Raises:
        PollCancelledError: See ``iter_process_status``.
        PollTimeoutError: See ``iter_process_status``.
    """
    statuses = iter_process_status(
        orchestrator,
        ticket_id,
        interval_s=interval_s,
        timeout_s=timeout_s,
        cancel_event=cancel_event,
        terminal_codes=terminal_codes,
        clock=clock,
    )
    last = next(statuses)
    for last in statuses:  # noqa: B007
        pass
    return last
