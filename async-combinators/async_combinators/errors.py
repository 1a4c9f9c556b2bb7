class CombinatorError(Exception):
    """Base class for everything raised by async_combinators."""


class WaitTimeoutError(CombinatorError, TimeoutError):
    def __init__(self, task_name: str, timeout: float) -> None:
        super().__init__(f"{task_name!r} did not settle within {timeout:.3f} seconds")
        self.task_name = task_name
        self.timeout = timeout


class EmptyInputError(CombinatorError, ValueError):
    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation} needs at least one task")
        self.operation = operation


class TaskFailure(CombinatorError):
    """
    Failure of an underlying unit of work, re-raised at the edge.

    The original exception is kept on ``cause`` and as ``__cause__``.
    """

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"task failed: {cause!r}")
        self.cause = cause


class TaskAlreadyCompletedError(CombinatorError, RuntimeError):
    def __init__(self, task_name: str) -> None:
        super().__init__(f"{task_name!r} is already completed")
        self.task_name = task_name
