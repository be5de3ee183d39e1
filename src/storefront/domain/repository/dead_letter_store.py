"""Abstract store for webhook deliveries that could not be applied."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass
class DeadLetter:
    id: int | None
    delivery_id: str
    event_kind: str
    body: bytes
    reason: str
    attempts: int
    resolved: bool = False
    created_at: datetime | None = None


class DeadLetterStore(ABC):

    @abstractmethod
    def add(self, letter: DeadLetter) -> None:
        """Persist a dead letter in its own transaction."""

    @abstractmethod
    def list_unresolved(self, limit: int = 100) -> list[DeadLetter]:
        """Return unresolved letters, oldest first."""

    @abstractmethod
    def mark_resolved(self, letter_id: int) -> None:
        """Flag a letter as handled."""
