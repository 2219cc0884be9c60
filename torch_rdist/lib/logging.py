"""Logger hierarchy for torch_rdist.

Modules log through ``get_logger(__name__)``. Records flow up to the
``torch_rdist`` package logger, which owns the only console handler; stdout is
left to the command line results.
"""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, TextIO

PACKAGE_LOGGER = "torch_rdist"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_console: Optional[logging.Handler] = None


def configure_logging(
    level: int = logging.INFO,
    stream: Optional[TextIO] = None,
    format_string: str = DEFAULT_FORMAT,
    force: bool = False,
) -> logging.Logger:
    """Install the console handler on the package logger.

    Only the first call takes effect unless ``force`` is set, in which case the
    previous console handler is replaced.
    """
    global _console

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _console is not None and not force:
        return package_logger
    if _console is not None:
        package_logger.removeHandler(_console)

    _console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    _console.setFormatter(logging.Formatter(format_string))
    package_logger.addHandler(_console)
    package_logger.setLevel(level)
    # pytest's caplog listens on the root logger
    package_logger.propagate = True
    return package_logger


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def set_global_log_level(level: int) -> None:
    """Set the level of the package logger and its console handler."""
    configure_logging().setLevel(level)
    if _console is not None:
        _console.setLevel(level)


@contextmanager
def capture_to_file(path: Path, level: int = logging.INFO) -> Iterator[logging.Handler]:
    """Append package records at ``level`` or above to ``path`` inside the block.

    The package logger is lowered to ``level`` for the duration if needed, so
    estimator records reach the file even when the console is quieter.
    """
    package_logger = configure_logging()
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    previous_level = package_logger.level
    if package_logger.getEffectiveLevel() > level:
        package_logger.setLevel(level)
    package_logger.addHandler(handler)
    try:
        yield handler
    finally:
        package_logger.removeHandler(handler)
        handler.close()
        package_logger.setLevel(previous_level)
