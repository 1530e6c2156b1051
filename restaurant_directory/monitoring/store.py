from __future__ import annotations

import time
from collections import deque
from typing import Any

from ..config import DEFAULT_CONFIG

# Oldest events fall off once the window is full.
_events: deque[dict[str, Any]] = deque(maxlen=DEFAULT_CONFIG.metrics_window)


def record_event(event_type: str, data: dict[str, Any]) -> None:
    _events.append({
        "type": event_type,
        "timestamp": time.time(),
        **data,
    })


def get_events() -> list[dict[str, Any]]:
    return list(_events)


def clear_events() -> None:
    _events.clear()
