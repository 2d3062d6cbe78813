"""
Thread hand-off primitives between the producer, the UI and the consumer loop.

- LatestFrameSlot: producer -> consumer, keeps only the newest frame
- ClickMailbox: UI -> consumer, single slot, last write wins
- PointerState: UI -> renderer, continuous pointer position

None of these block the caller. The consumer polls once per iteration and
simply skips work when nothing new is there.
"""
import threading
from typing import Generic, Optional, TypeVar

from .tracking_types import PixelCoordinate

T = TypeVar("T")


class LatestFrameSlot(Generic[T]):
    """Bounded (size 1) hand-off that overwrites unconsumed frames."""

    def __init__(self):
        self._lock = threading.Lock()
        self._item: Optional[T] = None
        self.published = 0
        self.dropped = 0

    def publish(self, item: T) -> None:
        with self._lock:
            if self._item is not None:
                self.dropped += 1
            self._item = item
            self.published += 1

    @property
    def pending(self) -> bool:
        """True while a published frame is waiting to be polled."""
        with self._lock:
            return self._item is not None

    def poll(self) -> Optional[T]:
        """Take the newest frame if one arrived since the last poll."""
        with self._lock:
            item, self._item = self._item, None
            return item


class ClickMailbox:
    """Latest click staged by the UI, read once per consumer iteration."""

    def __init__(self):
        self._lock = threading.Lock()
        self._click: Optional[PixelCoordinate] = None

    def post(self, pixel: PixelCoordinate) -> None:
        with self._lock:
            self._click = pixel

    def take(self) -> Optional[PixelCoordinate]:
        with self._lock:
            click, self._click = self._click, None
            return click


class PointerState:
    """Last known pointer position; clicks are taken from here."""

    def __init__(self):
        self._lock = threading.Lock()
        self._position = PixelCoordinate(0, 0)

    def move(self, x: int, y: int) -> None:
        with self._lock:
            self._position = PixelCoordinate(int(x), int(y))

    @property
    def position(self) -> PixelCoordinate:
        with self._lock:
            return self._position
