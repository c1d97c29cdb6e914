from __future__ import annotations

import logging
import os
import threading
from typing import List, Set

log = logging.getLogger(__name__)


class CleanupScheduler:
    """
    Deletes request temp files after a fixed delay.

    Each `schedule` call starts one daemon timer. Deletion runs outside the
    request/response cycle; a failed unlink is logged and never re-raised.
    """

    def __init__(self, delay: float = 30.0):
        self.delay = delay
        self._pending: Set[threading.Timer] = set()
        self._lock = threading.Lock()

    def schedule(self, *paths: str) -> threading.Timer:
        """Schedule one deletion attempt per distinct path."""
        unique: List[str] = list(dict.fromkeys(p for p in paths if p))

        timer = threading.Timer(self.delay, self._run)
        timer.args = (unique, timer)
        timer.daemon = True
        with self._lock:
            self._pending.add(timer)
        timer.start()

        log.debug("Scheduled deletion of %s in %.1fs", unique, self.delay)
        return timer

    def flush(self) -> None:
        """Cancel every pending timer and delete its files right away."""
        with self._lock:
            pending = list(self._pending)
            self._pending.clear()

        for timer in pending:
            timer.cancel()
            remove_files(timer.args[0])

    def _run(self, paths: List[str], timer: threading.Timer) -> None:
        with self._lock:
            if timer not in self._pending:
                return
            self._pending.discard(timer)
        remove_files(paths)


def remove_files(paths: List[str]) -> None:
    for path in paths:
        try:
            os.unlink(path)
        except OSError as e:
            log.error("Failed to delete %s: %s", path, e)
        else:
            log.info("Deleted %s", path)
