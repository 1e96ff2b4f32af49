"""
Runtime Stuff

Runtime member introspection for Python types: cached member descriptors,
alias-aware name resolution, compiled accessors, ORM metadata, value
conversion and a small object facade (get/set by path, construct, copy).
"""

__version__ = "1.0.0"
__author__ = "Runtime Stuff Team"

from runtime_stuff.config import configure, get_config
from runtime_stuff.core import obj
from runtime_stuff.core.converter import change_type, try_change_type
from runtime_stuff.core.members import (
    MemberDescriptor,
    MemberKind,
    NameKind,
    clear_caches,
    describe,
    mark,
)

__all__ = [
    "configure",
    "get_config",
    "obj",
    "change_type",
    "try_change_type",
    "MemberDescriptor",
    "MemberKind",
    "NameKind",
    "clear_caches",
    "describe",
    "mark",
]
