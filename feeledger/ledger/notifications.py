"""Toast-style notifications kept as component state instead of DOM nodes."""

import itertools
import logging
import time
from collections import deque
from typing import Callable, Deque, List, Optional

from pydantic import BaseModel

from feeledger.core.enums import NotificationKind

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    id: int
    message: str
    kind: NotificationKind
    duration_ms: int
    created_at: float

    def expires_at(self) -> float:
        return self.created_at + self.duration_ms / 1000.0


class NotificationService:
    def __init__(
        self,
        default_duration_ms: int = 3000,
        max_items: int = 20,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_duration_ms = default_duration_ms
        self._clock = clock
        self._items: Deque[Notification] = deque(maxlen=max_items)
        self._ids = itertools.count(1)

    def notify(
        self,
        message: str,
        kind: NotificationKind = NotificationKind.INFO,
        duration_ms: Optional[int] = None,
    ) -> Notification:
        item = Notification(
            id=next(self._ids),
            message=message,
            kind=kind,
            duration_ms=self.default_duration_ms if duration_ms is None else duration_ms,
            created_at=self._clock(),
        )
        self._items.append(item)
        if kind == NotificationKind.ERROR:
            logger.warning("Notify error: %s", message)
        return item

    def active(self) -> List[Notification]:
        """Unexpired notifications, oldest first. Expired ones are pruned."""
        now = self._clock()
        while self._items and self._items[0].expires_at() <= now:
            self._items.popleft()
        return [n for n in self._items if n.expires_at() > now]

    def dismiss(self, notification_id: int) -> bool:
        for item in self._items:
            if item.id == notification_id:
                self._items.remove(item)
                return True
        return False

    def clear(self) -> None:
        self._items.clear()
