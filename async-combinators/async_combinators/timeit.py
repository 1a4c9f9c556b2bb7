from contextlib import contextmanager
import dataclasses
import logging
import time
import typing

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Stopwatch:
    started_at: float
    stopped_at: typing.Optional[float] = None

    @property
    def elapsed(self) -> float:
        # a running stopwatch reports the time so far
        end = self.stopped_at if self.stopped_at is not None else time.monotonic()
        return end - self.started_at

    def stop(self) -> None:
        if self.stopped_at is None:
            self.stopped_at = time.monotonic()


@contextmanager
def timer(label: str = "block") -> typing.Iterator[Stopwatch]:
    """
    Usage:
        >>> with timer("fetch stock") as stopwatch:
        ...     # example: simulate a long-running operation
        ...     time.sleep(1)
        ...
        >>> round(stopwatch.elapsed)
        1

    Logs "fetch stock: elapsed time: 1.00 seconds" at DEBUG level.
    """
    stopwatch = Stopwatch(started_at=time.monotonic())
    try:
        yield stopwatch
    finally:
        stopwatch.stop()
        logger.debug("%s: elapsed time: %.2f seconds", label, stopwatch.elapsed)
