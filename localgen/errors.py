"""Errors raised and reported by the declaration pass."""

from __future__ import annotations

from .codemodel import Loc, Path


class UnsupportedConstructError(Exception):
    """Assignment inside an expression whose target is not a bare name.

    Aborts the pass for the enclosing function before anything is mutated.
    """

    def __init__(self, kind: str, path: Path, loc: Loc):
        self.kind: str = kind
        self.path: Path = path
        self.loc: Loc = loc
        self.msg: str = "unsupported assignment target '" + kind + "' in expression"
        super().__init__(
            self.msg
            + " at line "
            + str(loc.line)
            + " col "
            + str(loc.col)
            + " (statement path "
            + ".".join(str(h) for h in path)
            + ")"
        )


class LocalsInternalError(Exception):
    """Walker invariant broken: missing block record or unhandled node kind."""


class LocalsError:
    """A function the declaration pass could not process."""

    def __init__(self, lineno: int, col: int, function: str, message: str) -> None:
        self.lineno: int = lineno
        self.col: int = col
        self.function: str = function
        self.message: str = message

    def __repr__(self) -> str:
        return (
            "error:"
            + str(self.lineno)
            + ":"
            + str(self.col)
            + ": [locals] "
            + self.function
            + ": "
            + self.message
        )
