"""Shaderpass: compile multipass fragment shaders and map errors to the user code."""

# ruff: noqa: F401, F403

from ._version import __version__, version_info
from . import utils

from .compiler import *
from .renderers import *

from .utils import enums, logger
from .utils.enums import *
