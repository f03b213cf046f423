"""Statewalk: an interpreter for States-language workflows."""

import logging

from .config import StatewalkConfig, load_config
from .context import Context
from .errors import (
    ExecutionError,
    IntrinsicArgumentError,
    IntrinsicSyntaxError,
    InvalidWorkflowError,
    PathError,
    StatewalkError,
    TaskFailed,
)
from .intrinsics import IntrinsicFunction
from .paths import Path, ReferencePath
from .payload_template import PayloadTemplate
from .runners import get_runner
from .workflow import Execution, Workflow

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Context",
    "Execution",
    "ExecutionError",
    "IntrinsicArgumentError",
    "IntrinsicFunction",
    "IntrinsicSyntaxError",
    "InvalidWorkflowError",
    "Path",
    "PathError",
    "PayloadTemplate",
    "ReferencePath",
    "StatewalkConfig",
    "StatewalkError",
    "TaskFailed",
    "Workflow",
    "get_runner",
    "load_config",
]
