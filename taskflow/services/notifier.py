"""Change feed for committed mutations.

Events are published after the transaction commits. Delivery is best effort:
a failing subscriber or an unreachable redis never affects the mutation.
Subscribers should re-read current state instead of trusting event order.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from taskflow.config import settings
from taskflow.rbac.policies import Entity
from taskflow.redis_client import redis_client

logger = logging.getLogger(__name__)

class ChangeKind(str, Enum):
    insert = "INSERT"
    update = "UPDATE"
    delete = "DELETE"

@dataclass(frozen=True)
class ChangeEvent:
    entity: Entity
    kind: ChangeKind
    row: dict
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_json(self) -> str:
        return json.dumps(
            {
                "entity": self.entity.value,
                "kind": self.kind.value,
                "row": self.row,
                "at": self.at.isoformat(),
            }
        )

Subscriber = Callable[[ChangeEvent], None]

class ChangeNotifier:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: dict[Entity, list[Subscriber]] = {}

    def subscribe(self, entity: Entity, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subs.setdefault(entity, []).append(callback)

        def _unsubscribe() -> None:
            self.unsubscribe(entity, callback)

        return _unsubscribe

    def unsubscribe(self, entity: Entity, callback: Subscriber) -> None:
        with self._lock:
            subs = self._subs.get(entity, [])
            if callback in subs:
                subs.remove(callback)

    def subscribers(self, entity: Entity) -> list[Subscriber]:
        with self._lock:
            return list(self._subs.get(entity, []))

    def publish(self, event: ChangeEvent) -> None:
        for cb in self.subscribers(event.entity):
            try:
                cb(event)
            except Exception:
                logger.exception("change subscriber failed for %s %s", event.entity.value, event.kind.value)

        if settings.notify_redis_enabled:
            _publish_redis(event)

def _publish_redis(event: ChangeEvent) -> None:
    channel = f"{settings.notify_channel_prefix}:{event.entity.value}"
    try:
        redis_client.publish(channel, event.to_json())
    except Exception as e:
        # fail-open if redis is down
        logger.warning("change feed publish to %s failed: %s", channel, e.__class__.__name__)

notifier = ChangeNotifier()
