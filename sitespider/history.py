"""Thread-safe set of URLs already claimed in the current run."""

import threading


def _key(url: str) -> str:
    return str(url).lower()


class History:
    """
    Visited-URL claim set. claim() is the single atomic test-and-insert that
    decides whether a fetch proceeds; keys compare case-insensitively.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # key -> URL as first claimed (insertion ordered)
        self._urls: dict[str, str] = {}

    def claim(self, url: str) -> bool:
        """True iff this call inserted url; False if it was already claimed this run."""
        key = _key(url)
        with self._lock:
            if key in self._urls:
                return False
            self._urls[key] = str(url)
            return True

    def __contains__(self, url: object) -> bool:
        if not isinstance(url, str):
            return False
        with self._lock:
            return _key(url) in self._urls

    def reset(self) -> None:
        with self._lock:
            self._urls.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._urls)

    __len__ = size

    def snapshot(self) -> list[str]:
        """Claimed URLs in claim order."""
        with self._lock:
            return list(self._urls.values())
