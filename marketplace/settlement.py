"""All-or-nothing execution of a sequence of collaborator calls.

Each step registers the call that reverses it. If any step (or the body of
the ``async with`` block) fails, the completed steps are reversed newest
first and the original exception propagates.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None]]

class RollbackError(Exception):
    """Raised when a completed step could not be reversed."""
    pass

class Settlement:
    """Unit of work with compensating actions.

    Usage::

        async with Settlement("purchase of item 1") as unit:
            await unit.step(pay, undo=refund, description="buyer pays")
            await unit.step(deliver, description="deliver asset")
    """

    def __init__(self, label: str):
        self.label = label
        self._undo: List[Tuple[str, Action]] = []
        self.completed: List[str] = []

    async def step(self, action: Action, undo: Optional[Action] = None, description: str = "") -> None:
        """Run action and remember how to reverse it."""
        await action()
        self.completed.append(description)
        if undo is not None:
            self._undo.append((description, undo))

    async def rollback(self) -> None:
        """Reverse completed steps, newest first.

        Raises:
            RollbackError: If a reversal fails; remaining reversals are still attempted
        """
        failures = []
        while self._undo:
            description, undo = self._undo.pop()
            try:
                await undo()
                logger.debug(f"{self.label}: reversed '{description}'")
            except Exception as e:
                logger.error(f"{self.label}: failed to reverse '{description}': {e}")
                failures.append(f"{description}: {e}")

        if failures:
            raise RollbackError(f"{self.label}: rollback incomplete ({'; '.join(failures)})")

    async def __aenter__(self) -> 'Settlement':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self._undo.clear()
            return False

        logger.warning(f"{self.label}: rolling back {len(self._undo)} step(s) after {exc_type.__name__}: {exc}")
        try:
            await self.rollback()
        except RollbackError as rollback_error:
            raise rollback_error from exc
        return False
