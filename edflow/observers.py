import logging
import threading
from typing import Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class Listeners:
    """Payload-free change notification (observers re-read the store)."""

    def __init__(self):
        self._items: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, fn: Listener) -> Callable[[], None]:
        with self._lock:
            self._items.append(fn)

        def unsubscribe() -> None:
            with self._lock:
                if fn in self._items:
                    self._items.remove(fn)

        return unsubscribe

    def emit(self) -> None:
        with self._lock:
            items = list(self._items)
        for fn in items:
            try:
                fn()
            except Exception as e:
                # one bad subscriber must not starve the rest
                logger.error(f"Subscriber {fn!r} raised: {e}")
