"""
Anti double-scan côté borne.

Un badge passé deux fois de suite dans la fenêtre DEBOUNCE_TIMEOUT est ignoré
avant même d'appeler la politique de pointage. Chaque borne (device) a son
propre état : deux bornes différentes ne se bloquent pas mutuellement.
"""

import threading
from typing import Dict, Optional

from checker.config import settings


class ScanDebouncer:
    """Mémorise le dernier identifiant accepté et l'instant du scan (epoch ms)."""

    def __init__(self, timeout_ms: Optional[int] = None):
        self.timeout_ms = settings.DEBOUNCE_TIMEOUT if timeout_ms is None else timeout_ms
        self.last_identifier: Optional[str] = None
        self.last_scan_ms = 0

    def is_double_scan(self, identifier: str, now_ms: int) -> bool:
        if identifier == self.last_identifier and now_ms - self.last_scan_ms < self.timeout_ms:
            return True
        self.last_identifier = identifier
        self.last_scan_ms = now_ms
        return False

    def reset(self) -> None:
        self.last_identifier = None
        self.last_scan_ms = 0


class DebounceRegistry:
    """Un ScanDebouncer par borne, créé au premier scan."""

    def __init__(self, timeout_ms: Optional[int] = None):
        self.timeout_ms = timeout_ms
        self._debouncers: Dict[str, ScanDebouncer] = {}
        # Les routes synchrones FastAPI tournent dans un pool de threads
        self._lock = threading.Lock()

    def for_device(self, device: Optional[str]) -> ScanDebouncer:
        key = device or "default"
        with self._lock:
            debouncer = self._debouncers.get(key)
            if debouncer is None:
                debouncer = ScanDebouncer(self.timeout_ms)
                self._debouncers[key] = debouncer
            return debouncer

    def is_double_scan(self, device: Optional[str], identifier: str, now_ms: int) -> bool:
        debouncer = self.for_device(device)
        with self._lock:
            return debouncer.is_double_scan(identifier, now_ms)

    def clear(self) -> None:
        with self._lock:
            self._debouncers.clear()
