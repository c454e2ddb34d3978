# -*- coding: utf-8 -*-
"""
Centralized logging configuration for the chunking pipeline

Entry points (CLI, notebooks, services) call setup_logging() once; every module
then uses logger = logging.getLogger(__name__). Console output always goes to
stdout, an optional log file receives the same records.

Examples:
    from chunkmerge.utils.logger import setup_logging
    setup_logging(level='DEBUG', log_file='logs/chunking.log')

    import logging
    logger = logging.getLogger(__name__)
    logger.debug("Pass 3: 41 candidates, limit 16")

"""
# Standard library
import logging
import sys
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Libraries that are chatty at INFO while a model loads
NOISY_LOGGERS = ('sentence_transformers', 'transformers', 'urllib3', 'filelock', 'httpx')

_logging_configured = False


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    format_string: str = DEFAULT_FORMAT,
    quiet_third_party: bool = True,
) -> None:
    """
    Configure root logging for the application.

    Safe to call more than once; only the first call configures handlers.

    Args:
        level: Logging level as int or name ('DEBUG', 'INFO', ...)
        log_file: Optional log file path; parent directories are created
        format_string: Log record format
        quiet_third_party: Raise model-loading libraries to WARNING
    """
    global _logging_configured

    if _logging_configured:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown logging level: {level}")

    formatter = logging.Formatter(format_string)
    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    if quiet_third_party:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _logging_configured = True

