from __future__ import annotations

import logging
from pathlib import Path

from torch_rdist.lib.logging import (
    PACKAGE_LOGGER,
    capture_to_file,
    configure_logging,
    get_logger,
    set_global_log_level,
)


def test_module_loggers_share_one_console_handler() -> None:
    first = configure_logging()
    second = configure_logging()
    assert first is second
    assert first.name == PACKAGE_LOGGER
    assert len([h for h in first.handlers if isinstance(h, logging.StreamHandler)]) == 1
    assert get_logger("torch_rdist.lib.push").parent is first


def test_capture_to_file_collects_records_below_console_level(tmp_path: Path) -> None:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    previous = package_logger.level
    set_global_log_level(logging.WARNING)
    try:
        path = tmp_path / "run.log"
        with capture_to_file(path):
            get_logger("torch_rdist.lib.estimator").info("inside the block")
        get_logger("torch_rdist.lib.estimator").info("after the block")

        text = path.read_text(encoding="utf-8")
        assert "torch_rdist.lib.estimator - INFO - inside the block" in text
        assert "after the block" not in text
        assert package_logger.level == logging.WARNING
        assert all(not isinstance(h, logging.FileHandler) for h in package_logger.handlers)
    finally:
        set_global_log_level(previous)
