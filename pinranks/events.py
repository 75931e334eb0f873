"""Event system for reporting background progress to a presentation layer.

Votes are fire-and-forget from the caller's point of view; their lifecycle
(queued, running, completed, failed) is reported through an
``EventHandler``. Presentation layers subscribe by implementing the
protocol; core modules never know who is listening.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from pinranks.models import Entity, Matchup


class VoteStatus(str, Enum):
    SUBMITTED = "submitted"
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


class EventHandler(Protocol):
    """Protocol for handlers of engine events."""

    def on_vote_status(
        self,
        user_id: str,
        task_id: int,
        status: VoteStatus,
        **kwargs: Any
    ) -> None:
        """Called on every vote lifecycle transition.

        Args:
            user_id: Owner of the vote
            task_id: Monotonic id assigned at submission
            status: New status
            **kwargs: Additional context (``error`` on failure)
        """
        ...

    def on_matchup_ready(
        self,
        matchup: "Matchup | None",
        **kwargs: Any
    ) -> None:
        """Called when a new matchup was drawn (None when none is available)."""
        ...

    def on_side_replaced(
        self,
        side_index: int,
        entity: "Entity | None",
        needs_refresh: bool,
        **kwargs: Any
    ) -> None:
        """Called after a replacement attempt."""
        ...


class NullEventHandler:
    """Event handler that does nothing."""

    def on_vote_status(self, *args: Any, **kwargs: Any) -> None:
        pass

    def on_matchup_ready(self, *args: Any, **kwargs: Any) -> None:
        pass

    def on_side_replaced(self, *args: Any, **kwargs: Any) -> None:
        pass


class RecordingEventHandler:
    """Keeps every event in memory; handy for tests and diagnostics."""

    def __init__(self):
        self.vote_statuses: list[tuple[str, int, VoteStatus]] = []
        self.vote_errors: dict[int, str] = {}
        self.matchups: list["Matchup | None"] = []
        self.replacements: list[tuple[int, "Entity | None", bool]] = []

    def on_vote_status(self, user_id: str, task_id: int, status: VoteStatus, **kwargs: Any) -> None:
        self.vote_statuses.append((user_id, task_id, status))
        if status == VoteStatus.FAILED:
            self.vote_errors[task_id] = str(kwargs.get("error", ""))

    def on_matchup_ready(self, matchup: "Matchup | None", **kwargs: Any) -> None:
        self.matchups.append(matchup)

    def on_side_replaced(self, side_index: int, entity: "Entity | None", needs_refresh: bool, **kwargs: Any) -> None:
        self.replacements.append((side_index, entity, needs_refresh))

    def statuses_for(self, task_id: int) -> list[VoteStatus]:
        return [status for _, tid, status in self.vote_statuses if tid == task_id]
