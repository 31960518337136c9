# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Logging helpers.

All loggers live under the ``ddl_import`` namespace so that a single call to
``configure_logging`` controls the whole package.
"""

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "ddl_import"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

_configured = False


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the package namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(debug: bool = False, log_dir: Optional[str] = None, console_output: bool = True) -> None:
    """
    Configure package logging.

    Args:
        debug: Log at DEBUG level instead of INFO
        log_dir: Directory for a ``ddl_import.log`` file handler (disabled when None)
        console_output: Attach a rich console handler writing to stderr
    """
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    level = logging.DEBUG if debug else logging.INFO
    root.setLevel(level)

    if _configured:
        for handler in root.handlers:
            handler.setLevel(level)
        return

    if console_output:
        console_handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=debug)
        console_handler.setLevel(level)
        root.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(log_dir, "ddl_import.log"), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler.setLevel(level)
        root.addHandler(file_handler)

    root.propagate = False
    _configured = True
