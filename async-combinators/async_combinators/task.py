import asyncio
import enum
import functools
import logging
import typing

from async_combinators.errors import TaskAlreadyCompletedError
from async_combinators.result import Failure, Success, TaskResult

T = typing.TypeVar("T")

logger = logging.getLogger(__name__)

Callback = typing.Callable[[TaskResult], typing.Any]


class TaskState(str, enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


def outcome_of(future: asyncio.Future) -> TaskResult:
    # only meaningful for a done future
    if future.cancelled():
        return Failure(asyncio.CancelledError())
    error = future.exception()
    if error is not None:
        return Failure(error)
    return Success(future.result())


def settleable(error: BaseException) -> BaseException:
    """
    Return an exception a Future accepts in place of ``error``.

    Futures refuse StopIteration, so it is wrapped in a RuntimeError chained
    from it, the same way a coroutine that lets it escape is treated.
    """
    if isinstance(error, (StopIteration, StopAsyncIteration)):
        wrapped = RuntimeError(f"{type(error).__name__} raised by a unit of work")
        wrapped.__cause__ = error
        return wrapped
    return error


def _dispatch(task_name: str, callback: Callback, future: asyncio.Future) -> None:
    try:
        callback(outcome_of(future))
    except Exception:
        # one broken observer must not starve the ones registered after it
        logger.exception("on_complete callback %r failed for %s", callback, task_name)


class Task(typing.Generic[T]):
    """
    Handle to a pending or settled unit of asynchronous work.

    A task goes from PENDING to either RESOLVED or FAILED exactly once.
    Awaiting it never raises: ``await task`` gives back a ``Success`` or a
    ``Failure``. Waiting on a task never cancels the work behind it.
    """

    def __init__(
        self, future: asyncio.Future, name: typing.Optional[str] = None
    ) -> None:
        self._future = future
        self.name = name or f"task-{id(self):x}"

    def __repr__(self) -> str:
        return f"<Task {self.name} {self.state.value}>"

    @property
    def state(self) -> TaskState:
        if not self._future.done():
            return TaskState.PENDING
        if outcome_of(self._future).is_success:
            return TaskState.RESOLVED
        return TaskState.FAILED

    def done(self) -> bool:
        return self._future.done()

    def result(self) -> typing.Optional[TaskResult]:
        if not self._future.done():
            return None
        return outcome_of(self._future)

    def on_complete(self, callback: Callback) -> None:
        """
        Register ``callback`` to be called once with the task's TaskResult.

        Callbacks run on the event loop in registration order. One registered
        after the task settled still fires, on the next loop iteration.
        """
        self._future.add_done_callback(
            functools.partial(_dispatch, self.name, callback)
        )

    async def wait(self, timeout: typing.Optional[float] = None) -> bool:
        """Wait up to ``timeout`` seconds; return whether the task has settled."""
        if not self._future.done():
            # asyncio.wait neither cancels the future on timeout
            # nor when the waiter itself is cancelled
            await asyncio.wait((self._future,), timeout=timeout)
        return self._future.done()

    async def outcome(self) -> TaskResult:
        await self.wait()
        return outcome_of(self._future)

    def __await__(self) -> typing.Generator[typing.Any, None, TaskResult]:
        return self.outcome().__await__()


class Promise(typing.Generic[T]):
    """Write side of a Task: settles it exactly once."""

    def __init__(
        self, loop: asyncio.AbstractEventLoop, name: typing.Optional[str] = None
    ) -> None:
        self._future: asyncio.Future = loop.create_future()
        self.task: Task[T] = Task(self._future, name=name)

    def try_complete(self, result: TaskResult) -> bool:
        if self._future.done():
            return False
        if isinstance(result, Failure):
            if isinstance(result.error, asyncio.CancelledError):
                self._future.cancel()
            else:
                self._future.set_exception(settleable(result.error))
        else:
            self._future.set_result(result.value)
        return True

    def complete(self, result: TaskResult) -> None:
        """
        Raises:
            TaskAlreadyCompletedError: The task has already settled.
        """
        if not self.try_complete(result):
            raise TaskAlreadyCompletedError(self.task.name)

    def succeed(self, value: T) -> None:
        self.complete(Success(value))

    def fail(self, error: BaseException) -> None:
        self.complete(Failure(error))

    def complete_threadsafe(self, result: TaskResult) -> None:
        # for callers on a thread other than the loop's;
        # losing the race to another completion is not an error here
        self._future.get_loop().call_soon_threadsafe(self.try_complete, result)
