"""Abstract store for accepted webhook deliveries awaiting processing."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass
class InboxEntry:
    id: int | None
    delivery_id: str
    event_kind: str
    body: bytes
    attempts: int = 0
    next_attempt_at: datetime | None = None
    last_error: str | None = None
    # Outcome value once processed; None while the delivery is pending.
    outcome: str | None = None
    received_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.outcome is None


class WebhookInbox(ABC):
    """Deliveries are stored before they are acknowledged.

    Each call commits on its own, so an accepted delivery survives a
    crash before processing and a failed processing attempt.
    """

    @abstractmethod
    def add(self, entry: InboxEntry) -> None:
        """Persist a new pending delivery."""

    @abstractmethod
    def list_due(self, now: datetime, limit: int = 100) -> list[InboxEntry]:
        """Return pending deliveries whose next attempt is due, oldest first."""

    @abstractmethod
    def count_pending(self) -> int: ...

    @abstractmethod
    def mark_done(self, entry_id: int, outcome: str, attempts: int) -> None: ...

    @abstractmethod
    def defer(
        self, entry_id: int, attempts: int, next_attempt_at: datetime, error: str
    ) -> None:
        """Record a failed attempt and when to try again."""
