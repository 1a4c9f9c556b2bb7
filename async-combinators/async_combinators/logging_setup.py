import logging
import pathlib
import sys
import typing

LIBRARY_LOGGER = "async_combinators"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable:
    - async_combinators records pass at the handler's level
    - everything else only from WARNING up
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == LIBRARY_LOGGER or name.startswith(LIBRARY_LOGGER + "."):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(
    *,
    log_dir: typing.Union[str, pathlib.Path, None] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure the root logger for a program built on async_combinators.

    The library itself never calls this. Call it once, early; calling it
    again replaces the handlers instead of stacking new ones.
    """
    root = logging.getLogger()
    root_level = console_level if log_dir is None else min(console_level, file_level)
    root.setLevel(root_level)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(formatter)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    if log_dir is not None:
        log_dir = pathlib.Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(
            str(log_dir / "async_combinators.log"), encoding="utf-8"
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # warnings.warn(...) ends up in logging as 'py.warnings'
    logging.captureWarnings(True)
