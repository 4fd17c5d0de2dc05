"""Assignment of event timestamps to overlapping sliding windows."""

from __future__ import annotations

from txa.aggregation.models import Window


class WindowAssigner:
    """Maps timestamps onto hopping windows of size ``W`` advancing by ``S``.

    Windows are aligned to the epoch: every window start is a multiple of
    the slide step. A window stays open for writes until the observed
    stream time passes ``window.end + W``; after that it is expired and
    late events for it are skipped.
    """

    def __init__(self, size_ms: int, step_ms: int):
        if size_ms <= 0 or step_ms <= 0:
            raise ValueError("window size and step must be positive")
        if step_ms > size_ms:
            raise ValueError(
                f"window step ({step_ms}ms) must not exceed window size ({size_ms}ms)"
            )
        self.size_ms = size_ms
        self.step_ms = step_ms

    @property
    def retention_ms(self) -> int:
        return self.size_ms * 2

    def windows_for(self, timestamp: int) -> list[Window]:
        """Return every window containing ``timestamp``, oldest first."""
        windows: list[Window] = []
        start = timestamp - timestamp % self.step_ms
        while start >= 0 and start > timestamp - self.size_ms:
            windows.append(Window(start=start, end=start + self.size_ms))
            start -= self.step_ms
        windows.reverse()
        return windows

    def is_expired(self, window: Window, stream_time: int) -> bool:
        return stream_time > window.end + self.size_ms

    def live_windows(self, timestamp: int, stream_time: int) -> list[Window]:
        """Windows containing ``timestamp`` that still accept writes.

        An empty result means the event is too old for every window it
        belongs to.
        """
        return [
            w for w in self.windows_for(timestamp)
            if not self.is_expired(w, stream_time)
        ]
