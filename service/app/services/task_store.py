"""
Pending task bookkeeping.

ResultStore holds every submitted task that is still waiting for its
webhook result. ProcessedDeliveryLedger remembers which captured
deliveries were already handled so repeated polls skip them.

Both live in process memory only and are touched from the bot's single
event loop, so no locking is done here.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, Optional

DEFAULT_LEDGER_MAX = 1000
DEFAULT_LEDGER_KEEP = 500


def command_argument(text: str) -> str:
    """Everything after the first whitespace-delimited token, or '' if none."""
    parts = text.strip().split(maxsplit=1)
    if len(parts) < 2:
        return ""
    return parts[1].strip()


@dataclass
class Originator:
    """Where a reply for a task has to go."""
    chat_id: int
    message_id: int
    user_id: Optional[int] = None
    username: Optional[str] = None


@dataclass
class PendingTaskContext:
    """A submitted task waiting for its result."""
    task_id: str
    original_text: str  # full command message, trigger included
    category: str
    originator: Originator
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    stale_job: Any = None  # JobQueue job for the "still waiting" notice

    @property
    def argument_text(self) -> str:
        return command_argument(self.original_text)

    def cancel_stale_notice(self) -> None:
        if self.stale_job is not None:
            self.stale_job.schedule_removal()
            self.stale_job = None


class ResultStore:
    """task_id -> PendingTaskContext, iterated in insertion order."""

    def __init__(self):
        self._contexts: dict[str, PendingTaskContext] = {}

    def put(self, task_id: str, context: PendingTaskContext) -> None:
        self._contexts[task_id] = context

    def get(self, task_id: str) -> Optional[PendingTaskContext]:
        return self._contexts.get(task_id)

    def has(self, task_id: str) -> bool:
        return task_id in self._contexts

    def delete(self, task_id: str) -> Optional[PendingTaskContext]:
        return self._contexts.pop(task_id, None)

    def iterate_all(self) -> list[PendingTaskContext]:
        # Snapshot, callers delete while iterating
        return list(self._contexts.values())

    def expire_older_than(self, max_age: timedelta, now: Optional[datetime] = None) -> list[PendingTaskContext]:
        """Remove and return contexts created more than max_age ago."""
        now = now or datetime.now(timezone.utc)
        expired = [
            ctx for ctx in self._contexts.values()
            if now - ctx.created_at > max_age
        ]
        for ctx in expired:
            del self._contexts[ctx.task_id]
        return expired

    def __len__(self) -> int:
        return len(self._contexts)

    def __iter__(self) -> Iterator[PendingTaskContext]:
        return iter(self.iterate_all())


class ProcessedDeliveryLedger:
    """
    Bounded set of capture delivery ids that were already processed.

    Insertion ordered. compact() keeps only the newest `keep` ids once the
    ledger grows past `max_size`.
    """

    def __init__(self, max_size: int = DEFAULT_LEDGER_MAX, keep: int = DEFAULT_LEDGER_KEEP):
        if keep > max_size:
            raise ValueError("keep must not exceed max_size")
        self.max_size = max_size
        self.keep = keep
        self._ids: dict[str, None] = {}

    def contains(self, delivery_id: str) -> bool:
        return delivery_id in self._ids

    def add(self, delivery_id: str) -> None:
        self._ids[delivery_id] = None

    def compact(self) -> int:
        """Drop the oldest ids if over the cap. Returns how many were dropped."""
        if len(self._ids) <= self.max_size:
            return 0
        ids = list(self._ids)
        dropped = len(ids) - self.keep
        self._ids = dict.fromkeys(ids[dropped:])
        return dropped

    def __contains__(self, delivery_id: str) -> bool:
        return self.contains(delivery_id)

    def __len__(self) -> int:
        return len(self._ids)
