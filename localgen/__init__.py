"""localgen - declare-before-use local variables for translated code."""

from .errors import LocalsError, LocalsInternalError, UnsupportedConstructError
from .middleend import (
    generate_function_locals,
    generate_locals,
    generate_module_locals,
)

__all__ = [
    "LocalsError",
    "LocalsInternalError",
    "UnsupportedConstructError",
    "generate_function_locals",
    "generate_locals",
    "generate_module_locals",
]
