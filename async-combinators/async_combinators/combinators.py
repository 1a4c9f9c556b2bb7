"""
Combinators that build new tasks out of existing ones.

Every combinator returns immediately with a Task and does its work in the
background on the given ExecutionContext. Failures travel as ``Failure``
values: a failed input short-circuits everything that depends on it, and
nothing downstream of it is executed.

Only ``blocking_wait`` and ``await_result`` suspend their caller.
"""

import inspect
import logging
import typing

import pydantic

from async_combinators.context import ExecutionContext
from async_combinators.errors import EmptyInputError, WaitTimeoutError
from async_combinators.result import Failure, Success, TaskResult
from async_combinators.task import Callback, Task
from async_combinators.timeit import timer

T = typing.TypeVar("T")
U = typing.TypeVar("U")
A = typing.TypeVar("A")

logger = logging.getLogger(__name__)

_timeout_adapter = pydantic.TypeAdapter(pydantic.NonNegativeFloat)


def _apply(fn: typing.Callable[..., U], *args: typing.Any) -> TaskResult:
    # user code must not break a combinator, its exception becomes the outcome
    try:
        return Success(fn(*args))
    except Exception as error:
        return Failure(error)


def _settle(
    context: ExecutionContext,
    outcome: typing.Awaitable[TaskResult],
    name: str,
) -> Task:
    promise = context.promise(name=name)

    async def drive() -> None:
        # whatever happens in here, the task must not stay pending
        try:
            result = await outcome
        except Exception as error:
            result = Failure(error)
        except BaseException as error:
            promise.try_complete(Failure(error))
            raise
        promise.complete(result)

    context.spawn(drive())
    return promise.task


async def _fold(
    tasks: typing.Sequence[Task],
    init: typing.Any,
    combine: typing.Callable[[typing.Any, typing.Any], typing.Any],
) -> TaskResult:
    # left to right in input order, whatever order the tasks settle in
    accumulator = init
    for task in tasks:
        outcome = await task
        if isinstance(outcome, Failure):
            return outcome
        step = _apply(combine, accumulator, outcome.value)
        if isinstance(step, Failure):
            return step
        accumulator = step.value
    return Success(accumulator)


async def blocking_wait(
    task: Task[T], timeout: pydantic.NonNegativeFloat
) -> TaskResult:
    """
    Suspend the caller until ``task`` settles, at most ``timeout`` seconds.

    Discouraged outside of tests and program edges: prefer composing tasks.
    A task that has already settled is returned at once, even with a zero
    timeout.

    Raises:
        WaitTimeoutError: The task did not settle in time. It keeps running.
        pydantic.ValidationError: ``timeout`` is negative or not a number.
    """
    timeout = _timeout_adapter.validate_python(timeout)
    with timer(f"blocking_wait({task.name})"):
        if not await task.wait(timeout):
            logger.warning("%s did not settle within %.3f seconds", task.name, timeout)
            raise WaitTimeoutError(task.name, timeout)
    return task.result()


async def await_result(task: Task[T], timeout: pydantic.NonNegativeFloat) -> T:
    """
    Like ``blocking_wait``, but unwraps the value.

    Raises:
        TaskFailure: The task failed; the original error is its cause.
        WaitTimeoutError: The task did not settle in time.
    """
    outcome = await blocking_wait(task, timeout)
    return outcome.get()


def on_complete(task: Task[T], callback: Callback) -> None:
    task.on_complete(callback)


def chain(
    context: ExecutionContext,
    task: Task[T],
    fn: typing.Callable[[T], typing.Awaitable[U]],
) -> Task[U]:
    """
    Feed the value of ``task`` into ``fn`` and follow the task it returns.

    ``fn`` is not called when ``task`` fails.
    """

    async def chained() -> TaskResult:
        outcome = await task
        if isinstance(outcome, Failure):
            return outcome
        following = _apply(fn, outcome.value)
        if isinstance(following, Failure):
            return following
        if not inspect.isawaitable(following.value):
            kind = type(following.value).__name__
            return Failure(TypeError(f"chain expects a Task or awaitable, got {kind}"))
        return await context.adopt(following.value)

    return _settle(context, chained(), name=f"chain({task.name})")


def map_task(
    context: ExecutionContext,
    task: Task[T],
    fn: typing.Callable[[T], U],
) -> Task[U]:
    async def mapped() -> TaskResult:
        outcome = await task
        if isinstance(outcome, Failure):
            return outcome
        return _apply(fn, outcome.value)

    return _settle(context, mapped(), name=f"map({task.name})")


async def _collect(
    context: ExecutionContext,
    tasks: typing.Sequence[Task],
    fn: typing.Optional[typing.Callable[[typing.Any], typing.Any]] = None,
) -> TaskResult:
    values = []
    for task in tasks:
        outcome = await task
        if isinstance(outcome, Failure):
            return outcome
        if fn is not None:
            outcome = _apply(fn, outcome.value)
            if isinstance(outcome, Failure):
                return outcome
            if inspect.isawaitable(outcome.value):
                outcome = await context.adopt(outcome.value)
                if isinstance(outcome, Failure):
                    return outcome
        values.append(outcome.value)
    return Success(values)


def sequence(
    context: ExecutionContext, tasks: typing.Iterable[Task[T]]
) -> Task[typing.List[T]]:
    """
    Gather values in input order.

    Reports the first failure in submission order, whichever failed first in
    time. Tasks after it are neither awaited nor cancelled.
    """
    tasks = list(tasks)
    return _settle(context, _collect(context, tasks), name=f"sequence[{len(tasks)}]")


def traverse(
    context: ExecutionContext,
    tasks: typing.Iterable[Task[T]],
    fn: typing.Callable[[T], typing.Any],
) -> Task[typing.List[typing.Any]]:
    # fn may return a plain value, a Task or any other awaitable to follow
    tasks = list(tasks)
    return _settle(
        context, _collect(context, tasks, fn), name=f"traverse[{len(tasks)}]"
    )


def fold_left(
    context: ExecutionContext,
    tasks: typing.Iterable[Task[T]],
    init: A,
    combine: typing.Callable[[A, T], A],
) -> Task[A]:
    tasks = list(tasks)
    return _settle(
        context, _fold(tasks, init, combine), name=f"fold_left[{len(tasks)}]"
    )


def reduce_left(
    context: ExecutionContext,
    tasks: typing.Iterable[Task[T]],
    combine: typing.Callable[[T, T], T],
) -> Task[T]:
    tasks = list(tasks)
    name = f"reduce_left[{len(tasks)}]"
    if not tasks:
        return context.failed(EmptyInputError("reduce_left"), name=name)

    async def reduced() -> TaskResult:
        first = await tasks[0]
        if isinstance(first, Failure):
            return first
        return await _fold(tasks[1:], first.value, combine)

    return _settle(context, reduced(), name=name)


def first_completed_of(
    context: ExecutionContext, tasks: typing.Iterable[Task[T]]
) -> Task[T]:
    """
    Settle with whichever input settles first, success or failure.

    The other inputs keep running; their outcomes are dropped.
    """
    tasks = list(tasks)
    name = f"first_completed_of[{len(tasks)}]"
    if not tasks:
        return context.failed(EmptyInputError("first_completed_of"), name=name)

    promise = context.promise(name=name)

    def settle(task: Task[T]) -> Callback:
        def callback(outcome: TaskResult) -> None:
            if not promise.try_complete(outcome):
                logger.debug("%s: dropped late outcome of %s", name, task.name)

        return callback

    for task in tasks:
        task.on_complete(settle(task))
    return promise.task


def zip_tasks(
    context: ExecutionContext,
    first: Task[T],
    second: Task[U],
) -> Task[typing.Tuple[T, U]]:
    """Pair both values; the earliest observed failure wins."""
    name = f"zip({first.name}, {second.name})"
    promise = context.promise(name=name)
    values: typing.Dict[int, typing.Any] = {}

    def record(position: int) -> Callback:
        def callback(outcome: TaskResult) -> None:
            if isinstance(outcome, Failure):
                promise.try_complete(outcome)
                return
            values[position] = outcome.value
            if len(values) == 2:
                promise.try_complete(Success((values[0], values[1])))

        return callback

    first.on_complete(record(0))
    second.on_complete(record(1))
    return promise.task


def zip_with(
    context: ExecutionContext,
    first: Task[T],
    second: Task[U],
    fn: typing.Callable[[T, U], A],
) -> Task[A]:
    pair = zip_tasks(context, first, second)
    return map_task(context, pair, lambda values: fn(*values))
