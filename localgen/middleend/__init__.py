"""Tree rewriting passes run between the frontend and the printer."""

from .local_vars import (
    generate_function_locals,
    generate_locals,
    generate_module_locals,
)

__all__ = [
    "generate_function_locals",
    "generate_locals",
    "generate_module_locals",
]
