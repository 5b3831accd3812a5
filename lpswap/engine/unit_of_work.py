"""All-or-nothing scope for one engine operation."""

import logging
from typing import Any, List, Optional, Tuple

from lpswap.core.events import EventBus
from lpswap.core.interfaces import ITransactional


class UnitOfWork:
    """Snapshots transactional collaborators and stages telemetry.

    Leaving the scope without commit() (or through an exception) restores
    every participant and drops the staged events.
    """

    def __init__(self, participants: List[ITransactional], event_bus: Optional[EventBus] = None):
        self.participants = list(participants)
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)
        self._snapshots: List[Tuple[ITransactional, Any]] = []
        self._staged: List[Any] = []
        self._committed = False

    def __enter__(self) -> 'UnitOfWork':
        self._snapshots = [(participant, participant.snapshot()) for participant in self.participants]
        self._staged = []
        self._committed = False
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if not self._committed:
            self.rollback()
            if exc_type is not None:
                self.logger.warning(f"Rolled back after {exc_type.__name__}: {exc_value}")
        return False

    def stage(self, event):
        self._staged.append(event)

    @property
    def staged(self) -> List[Any]:
        return list(self._staged)

    def commit(self):
        """Make the effects final and publish the staged events."""
        self._committed = True
        events, self._staged = self._staged, []
        if self.event_bus is not None:
            for event in events:
                self.event_bus.publish(event)

    def rollback(self):
        for participant, snapshot in reversed(self._snapshots):
            participant.restore(snapshot)
        self._staged = []
