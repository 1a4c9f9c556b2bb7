import os
import typing

import pydantic

ENV_PREFIX = "ASYNC_COMBINATORS"


class ContextSettings(pydantic.BaseModel):
    """Knobs of an ExecutionContext."""

    model_config = pydantic.ConfigDict(frozen=True, extra="forbid")

    # size of the thread pool that runs plain (non-coroutine) callables
    max_workers: pydantic.PositiveInt = 8
    thread_name_prefix: str = "async-combinators"

    @classmethod
    def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        environ: typing.Optional[typing.Mapping[str, str]] = None,
    ) -> "ContextSettings":
        """
        Build settings from ``<PREFIX>_MAX_WORKERS`` and
        ``<PREFIX>_THREAD_NAME_PREFIX``.

        Unset or blank variables keep their defaults.

        Raises:
            pydantic.ValidationError: A variable is set to an invalid value.
        """
        environ = os.environ if environ is None else environ
        raw = {}
        for field_name in cls.model_fields:
            value = environ.get(f"{prefix}_{field_name.upper()}")
            if value is not None and value.strip():
                raw[field_name] = value.strip()
        return cls.model_validate(raw)
