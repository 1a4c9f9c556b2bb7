# tests/conftest.py

from __future__ import annotations

import asyncio
import typing

import pytest

from async_combinators.config import ContextSettings
from async_combinators.context import ExecutionContext


@pytest.fixture()
def context() -> typing.Iterator[ExecutionContext]:
    """
    A fresh ExecutionContext per test.

    The loop is bound lazily, on first use inside the test coroutine, so a
    plain (non-async) fixture is enough.
    """
    settings = ContextSettings(max_workers=4, thread_name_prefix="test-combinators")
    ctx = ExecutionContext(settings)
    yield ctx
    ctx.close()


@pytest.fixture()
def settle() -> typing.Callable[[], typing.Awaitable[None]]:
    """Let the loop run the callbacks that are already scheduled."""

    async def _settle(iterations: int = 5) -> None:
        for _ in range(iterations):
            await asyncio.sleep(0)

    return _settle
