import asyncio
import concurrent.futures
import functools
import inspect
import logging
import typing

from async_combinators.config import ContextSettings
from async_combinators.result import Failure, Success
from async_combinators.task import Promise, Task, settleable

T = typing.TypeVar("T")

logger = logging.getLogger(__name__)

Work = typing.Callable[[], typing.Any]


def _run_in_pool(work: Work) -> typing.Any:
    try:
        return work()
    except (StopIteration, StopAsyncIteration) as error:
        # asyncio cannot copy these into the future it hands back
        raise settleable(error) from error


class ExecutionContext:
    """
    The substrate tasks run on: an asyncio event loop plus a thread pool.

    There is no process-wide default, every combinator receives its context
    explicitly. The loop is picked up lazily from the running one, so a
    context can be built outside of a coroutine and used inside one.

    Usage:
        >>> async def main():
        ...     async with ExecutionContext() as context:
        ...         stock = context.submit(fetch_stock)
        ...         outcome = await blocking_wait(stock, timeout=5)
    """

    def __init__(
        self,
        settings: typing.Optional[ContextSettings] = None,
        *,
        loop: typing.Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.settings = settings or ContextSettings()
        self._loop = loop
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix=self.settings.thread_name_prefix,
        )
        # asyncio only keeps weak references to tasks
        self._drivers: typing.Set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def submit(self, work: Work, *, name: typing.Optional[str] = None) -> Task:
        """
        Start a zero-argument unit of work and return its Task.

        Coroutine functions run on the event loop; any other callable runs
        on the thread pool so it cannot block the loop.
        """
        name = name or getattr(work, "__name__", None)
        if inspect.iscoroutinefunction(work):
            future = self.loop.create_task(work())
        else:
            future = self.loop.run_in_executor(
                self._executor, functools.partial(_run_in_pool, work)
            )
        task = Task(future, name=name)
        logger.debug("submitted %s", task.name)
        return task

    def adopt(
        self, awaitable: typing.Awaitable[T], *, name: typing.Optional[str] = None
    ) -> Task[T]:
        if isinstance(awaitable, Task):
            return awaitable
        future = asyncio.ensure_future(awaitable, loop=self.loop)
        return Task(future, name=name)

    def promise(self, *, name: typing.Optional[str] = None) -> Promise:
        return Promise(self.loop, name=name)

    def successful(self, value: T, *, name: typing.Optional[str] = None) -> Task[T]:
        promise = self.promise(name=name)
        promise.complete(Success(value))
        return promise.task

    def failed(
        self, error: BaseException, *, name: typing.Optional[str] = None
    ) -> Task:
        promise = self.promise(name=name)
        promise.complete(Failure(error))
        return promise.task

    def spawn(self, coroutine: typing.Coroutine) -> asyncio.Task:
        driver = self.loop.create_task(coroutine)
        self._drivers.add(driver)
        driver.add_done_callback(self._drivers.discard)
        return driver

    def close(self) -> None:
        # work already running keeps running; nothing is cancelled
        self._executor.shutdown(wait=False)
        logger.debug(
            "execution context closed with %d pending drivers", len(self._drivers)
        )

    async def __aenter__(self) -> "ExecutionContext":
        return self

    async def __aexit__(self, *exc_info: typing.Any) -> None:
        self.close()
