"""Run-level progress counters shared by all crawl branches."""

import threading


class Progress:
    """
    Counters for one crawl run: created (URLs claimed for fetch), completed
    (fetch attempts finished, success or failure) and outstanding.

    Writers hold a lock so the paired counters move together; readers take a
    plain snapshot of a single int and never block.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._created = 0
        self._completed = 0
        self._outstanding = 0

    @property
    def created(self) -> int:
        return self._created

    @property
    def completed(self) -> int:
        return self._completed

    @property
    def outstanding(self) -> int:
        return self._outstanding

    def reset(self) -> None:
        with self._lock:
            self._created = 0
            self._completed = 0
            self._outstanding = 0

    def raise_created(self) -> None:
        """One URL was claimed and its fetch scheduled."""
        with self._lock:
            self._created += 1
            self._outstanding += 1

    def raise_completed(self) -> None:
        """One fetch attempt finished. Must pair with an earlier raise_created()."""
        with self._lock:
            if self._outstanding <= 0:
                raise RuntimeError("raise_completed() without a matching raise_created()")
            self._completed += 1
            self._outstanding -= 1

    def __str__(self) -> str:
        return f"tasks: {self.created}  outstanding: {self.outstanding}  completed: {self.completed}"

    def __repr__(self) -> str:
        return (
            f"Progress(created={self.created}, completed={self.completed}, "
            f"outstanding={self.outstanding})"
        )
