"""
Pipeline State Store

Single-writer, multi-reader holder for the current PipelineState.

Each pipeline run gets a token from begin_run(). Writes carrying a token
other than the active one are discarded, so a superseded run can never
overwrite what a newer run published.
"""
import asyncio
import logging
from collections.abc import AsyncIterator, Callable

from tv_aggregator.state import Loading, PipelineState, describe_state


logger = logging.getLogger(__name__)


class PipelineStateStore:
    """
    Holds the current pipeline state and fans publications out to subscribers.

    Subscribers get conflated updates: a reader that falls behind sees the
    latest state, not every intermediate one.
    """

    def __init__(self, initial: PipelineState | None = None):
        self._state: PipelineState = initial if initial is not None else Loading()
        self._active_run = 0
        self._subscribers: set[asyncio.Event] = set()

    @property
    def value(self) -> PipelineState:
        return self._state

    @property
    def active_run(self) -> int:
        return self._active_run

    def begin_run(self) -> int:
        """Start a new run; every earlier run token becomes stale."""
        self._active_run += 1
        logger.debug(f"Run {self._active_run} is now active")
        return self._active_run

    def is_active(self, run_id: int) -> bool:
        return run_id == self._active_run

    def publish(self, run_id: int, state: PipelineState) -> bool:
        """
        Replace the current state if run_id is the active run.

        Returns:
            True if the state was accepted, False if the write was stale
        """
        if not self.is_active(run_id):
            logger.debug(
                f"Discarding state from superseded run {run_id} (active: {self._active_run}): "
                f"{describe_state(state)}"
            )
            return False

        self._state = state
        logger.debug(f"Run {run_id} published {describe_state(state)}")
        for event in self._subscribers:
            event.set()
        return True

    def update(self, run_id: int, transform: Callable[[PipelineState], PipelineState]) -> bool:
        """Compare-and-set: apply transform to the current state for the active run."""
        if not self.is_active(run_id):
            logger.debug(f"Discarding update from superseded run {run_id}")
            return False
        return self.publish(run_id, transform(self._state))

    async def subscribe(self) -> AsyncIterator[PipelineState]:
        """Yield the current state, then every accepted publication."""
        event = asyncio.Event()
        self._subscribers.add(event)
        try:
            last: PipelineState | None = None
            while True:
                current = self._state
                if current is not last:
                    last = current
                    yield current
                    continue
                await event.wait()
                event.clear()
        finally:
            self._subscribers.discard(event)
