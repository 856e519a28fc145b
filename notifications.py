from collections import deque
from dataclasses import dataclass
from typing import Callable, List

import structlog

log = structlog.get_logger(__name__)

DEFAULT = "default"
DESTRUCTIVE = "destructive"

HISTORY_LIMIT = 200


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = DEFAULT


class Notifier:
    """Transient user-facing messages. Sinks decide how they are shown."""

    def __init__(self, sinks: List[Callable[[Notification], None]] = None, limit: int = HISTORY_LIMIT):
        self.sinks = list(sinks or [])
        self.history = deque(maxlen=limit)

    def add_sink(self, sink: Callable[[Notification], None]) -> None:
        self.sinks.append(sink)

    def notify(self, title: str, description: str, variant: str = DEFAULT) -> Notification:
        note = Notification(title, description, variant)
        self.history.append(note)
        for sink in self.sinks:
            sink(note)
        return note

    def success(self, title: str, description: str) -> Notification:
        return self.notify(title, description, DEFAULT)

    def error(self, title: str, description: str) -> Notification:
        log.warning("error_notified", title=title, description=description)
        return self.notify(title, description, DESTRUCTIVE)

    def clear(self) -> None:
        self.history.clear()
