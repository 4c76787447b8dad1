# -*- coding: utf-8 -*-
"""
Log configuration for impscope (loguru sinks for file and stderr).
"""

import os
import pathlib
import sys

from loguru import logger

from .defaults import CONFIG_DIR, DEFAULT_LOGLEVEL


def start_log(
    log_to_file=True,
    log_to_stdout=False,
    log_path=None,
    clear_prev=True,
    log_level=DEFAULT_LOGLEVEL,
    stdout_log_level=None,
):
    """Replace all loguru sinks with a file and/or stderr sink.

    `stdout_log_level` defaults to `log_level`.
    """
    if log_path is None or log_path == "":
        log_path = log_default_path()
    else:
        log_path = os.path.abspath(log_path)

    if clear_prev:
        clear_log(log_path)

    # first remove (default) stderr output
    logger.remove()

    if log_to_file:
        pathlib.Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_path, level=log_level, enqueue=True, colorize=False)
    if log_to_stdout:
        logger.add(
            sys.stderr,
            level=stdout_log_level or log_level,
            enqueue=True,
            colorize=True,
        )
    if log_to_file:
        logger.info("Log started at {}", log_path)
    else:
        logger.info("Log started.")


def log_default_path() -> str:
    return str(CONFIG_DIR.joinpath("impscope.log"))


def clear_log(log_path: str):
    """
    Clear the log file at the given path, if it exists.

    Arguments
    ---------
    log_path : str
        The path to the log file. Can get the default path with
        log_default_path().
    """
    if os.path.exists(log_path):
        try:
            os.remove(log_path)
        except PermissionError:
            logger.error(
                f"Could not clear log file {log_path}. Permission denied. Continuing."
            )


def shutdown_log():
    try:
        logger.info("Closing down log.")
        logger.remove()
    except Exception:
        logger.exception("Error shutting down log - skipping.")
