"""
Registry of logically active subscriptions.

The registry is the source of truth replayed against every freshly opened
transport session. Each subscribe call yields an independent entry, even when
several entries share a destination.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Any], Any]


@dataclass(frozen=True)
class SubscriptionHandle:
    """Opaque token returned to callers by subscribe()."""

    id: str
    destination: str


@dataclass
class SubscriptionEntry:
    handle: SubscriptionHandle
    handler: MessageHandler
    # Subscription on the current transport session, None until replayed
    raw_subscription: Optional[Any] = None

    @property
    def destination(self) -> str:
        return self.handle.destination

    @property
    def is_bound(self) -> bool:
        return self.raw_subscription is not None


class SubscriptionRegistry:
    """Insertion-ordered mapping of handle id to subscription entry."""

    def __init__(self) -> None:
        self._entries: Dict[str, SubscriptionEntry] = {}
        self._ids = itertools.count(1)

    def add(self, destination: str, handler: MessageHandler) -> SubscriptionEntry:
        if not destination:
            raise ValueError("destination must be a non-empty string")
        if not callable(handler):
            raise TypeError("handler must be callable")
        handle = SubscriptionHandle(id=f"handle-{next(self._ids)}", destination=destination)
        entry = SubscriptionEntry(handle=handle, handler=handler)
        self._entries[handle.id] = entry
        logger.debug("Registered subscription %s on %s", handle.id, destination)
        return entry

    def remove(self, handle: SubscriptionHandle) -> Optional[SubscriptionEntry]:
        entry = self._entries.pop(handle.id, None)
        if entry is None:
            logger.debug("Ignoring unknown subscription handle %s", handle.id)
        return entry

    def get(self, handle: SubscriptionHandle) -> Optional[SubscriptionEntry]:
        return self._entries.get(handle.id)

    def entries(self) -> Tuple[SubscriptionEntry, ...]:
        """Snapshot of the current entries, safe to iterate while mutating."""
        return tuple(self._entries.values())

    def handles(self) -> Tuple[SubscriptionHandle, ...]:
        return tuple(entry.handle for entry in self._entries.values())

    def clear_bindings(self) -> None:
        """Forget per-session subscriptions once their session is discarded."""
        for entry in self._entries.values():
            entry.raw_subscription = None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SubscriptionEntry]:
        return iter(self.entries())

    def __contains__(self, handle: object) -> bool:
        return isinstance(handle, SubscriptionHandle) and handle.id in self._entries
