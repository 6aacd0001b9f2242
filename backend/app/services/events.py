"""
Membership Events

In-process publish/subscribe for changes to a user's team set. The team
service publishes; subscribers (the profile cache) react. Subscribers are
best-effort: a failing handler is logged and never fails the publisher.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Tuple

logger = logging.getLogger(__name__)

MEMBERSHIP_ASSIGNED = "assigned"
MEMBERSHIP_UNASSIGNED = "unassigned"
MEMBERSHIP_VISIBILITY = "visibility"
MEMBERSHIP_TEAM_DELETED = "team_deleted"


@dataclass(frozen=True)
class MembershipChanged:
    team_id: str
    user_ids: Tuple[str, ...]
    reason: str = field(default=MEMBERSHIP_ASSIGNED)


MembershipHandler = Callable[[MembershipChanged], Awaitable[None]]


class MembershipEvents:
    def __init__(self):
        self._handlers: List[MembershipHandler] = []

    def subscribe(self, handler: MembershipHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: MembershipHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    async def publish(self, event: MembershipChanged) -> None:
        """Deliver an event to every subscriber concurrently."""
        if not self._handlers or not event.user_ids:
            return

        results = await asyncio.gather(
            *(handler(event) for handler in self._handlers), return_exceptions=True
        )
        for handler, result in zip(self._handlers, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Membership event handler {getattr(handler, '__qualname__', handler)} "
                    f"failed for team {event.team_id} ({event.reason}): {result}"
                )


membership_events = MembershipEvents()
