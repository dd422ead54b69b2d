"""
Utility functions and the package logger for shaderpass.

.. currentmodule:: shaderpass.utils

.. autosummary::
    :toctree: utils/

    enums
    logger

"""

import os
import logging

from . import enums  # noqa: F401


logger = logging.getLogger("shaderpass")


def _set_log_level():
    # Set default level
    logger.setLevel(logging.WARN)
    # Set user-specified level
    level = os.getenv("SHADERPASS_LOG_LEVEL", "")
    if level:
        try:
            if level.isnumeric():
                logger.setLevel(int(level))
            else:
                logger.setLevel(level.upper())
        except Exception:
            logger.warning(f"Invalid shaderpass log level: {level}")


_set_log_level()


def count_lines(text):
    """Get the number of lines in the given text, counting a trailing
    newline as the start of an (empty) line, like a text editor does.
    """
    return text.count("\n") + 1
