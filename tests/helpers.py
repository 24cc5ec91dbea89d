"""Test doubles shared across the suite."""

from typing import Dict, List, Set, Tuple

from habitbell.core.notification_scheduler import NotificationContent, ScheduledRequest
from habitbell.core.triggers import Trigger


class FakeScheduler:
    """In-memory NotificationScheduler that records calls and can fail on demand."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.requests: Dict[str, ScheduledRequest] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_schedule: Set[str] = set()
        self.fail_cancel: Set[str] = set()
        self.fail_list = False

    @property
    def identifiers(self) -> List[str]:
        return sorted(self.requests)

    async def list_scheduled(self) -> List[ScheduledRequest]:
        self.calls.append(("list", ""))
        if self.fail_list:
            raise RuntimeError("list failed")
        return list(self.requests.values())

    async def cancel(self, identifier: str) -> None:
        self.calls.append(("cancel", identifier))
        if identifier in self.fail_cancel:
            raise RuntimeError(f"cancel {identifier} failed")
        self.requests.pop(identifier, None)

    async def schedule(self, identifier: str, content: NotificationContent, trigger: Trigger) -> None:
        self.calls.append(("schedule", identifier))
        if identifier in self.fail_schedule:
            raise RuntimeError(f"schedule {identifier} failed")
        self.requests[identifier] = ScheduledRequest(identifier=identifier, content=content, trigger=trigger)

    async def cancel_all(self) -> None:
        self.calls.append(("cancel_all", ""))
        self.requests.clear()

