"""
Horodatage en millisecondes epoch, l'unité de tous les timestamps stockés.
"""

import time
from datetime import datetime, timezone

MS_PER_MINUTE = 60 * 1000
MS_PER_HOUR = 60 * MS_PER_MINUTE


def now_ms() -> int:
    return int(time.time() * 1000)


def to_ms(value: datetime) -> int:
    """Convertit un datetime (naïf = UTC) en epoch ms."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def from_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
