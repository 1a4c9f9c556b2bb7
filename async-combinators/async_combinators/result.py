# The outcome of a task is a value, never a raised exception:
# whoever observes a task, by waiting on it or through a callback,
# gets one of these two shapes.
import dataclasses
import typing

from async_combinators.errors import TaskFailure

T = typing.TypeVar("T")


@dataclasses.dataclass(frozen=True, slots=True)
class Success(typing.Generic[T]):
    value: T

    @property
    def is_success(self) -> bool:
        return True

    def get(self) -> T:
        return self.value

    def get_or_else(self, default: T) -> T:
        return self.value


@dataclasses.dataclass(frozen=True, slots=True)
class Failure:
    error: BaseException

    @property
    def is_success(self) -> bool:
        return False

    def get(self) -> typing.NoReturn:
        """
        Raises:
            TaskFailure: Always, chained from the original error.
        """
        raise TaskFailure(self.error) from self.error

    def get_or_else(self, default: T) -> T:
        return default


TaskResult = typing.Union[Success[T], Failure]
