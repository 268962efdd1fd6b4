"""Test engine adapter and framework versions."""

from utrunner.engine.version import Version
from utrunner.engine.runner import (
    RunRequest,
    TestEngine,
    UtplsqlEngine,
    split_object_list,
)

__all__ = [
    "Version",
    "RunRequest",
    "TestEngine",
    "UtplsqlEngine",
    "split_object_list",
]
