"""Local variable declaration pass.

For every local written without a prior declaration, introduce exactly one
declaration at the deepest statement shared by all of its writes:

    y = compute()            var y = compute();

    if c:                    object x;
        x = 1                if (c) { x = 1; }
    else:                    else { x = 2; }
        x = 2

Parameters, globals and names that already have a declaration are left
alone, so running the pass twice is the same as running it once.
"""

from __future__ import annotations

from typing import Iterator

from ..codemodel import (
    Function,
    LocalFunction,
    Module,
    Param,
    Stmt,
    Using,
    child_blocks,
)
from ..errors import LocalsError, UnsupportedConstructError
from .declarations import Placement, apply_declarations, plan_declarations
from .writes import index_body


def _param_names(params: list[Param] | list[str] | None) -> set[str]:
    names: set[str] = set()
    for p in params or []:
        names.add(p.name if isinstance(p, Param) else p)
    return names


def generate_locals(
    params: list[Param] | list[str] | None,
    body: list[Stmt],
    globals: set[str] | frozenset[str],
) -> list[Placement]:
    """Rewrite one function body in place. Returns the placements applied.

    Raises UnsupportedConstructError (body untouched) when a write cannot be
    placed safely.
    """
    index = index_body(body, globals)
    placements = plan_declarations(index, _param_names(params))
    apply_declarations(index, body, placements)
    return placements


def generate_function_locals(
    func: Function, globals: set[str] | frozenset[str]
) -> list[Placement]:
    """Run the pass on a function definition."""
    return generate_locals(func.params, func.body, globals)


def _local_functions(body: list[Stmt]) -> Iterator[Function]:
    """Functions defined directly in body, at any block depth.

    Does not look inside the functions it yields.
    """
    for stmt in body:
        if isinstance(stmt, LocalFunction):
            yield stmt.func
        elif isinstance(stmt, Using):
            yield from _local_functions(stmt.body)
        else:
            for _, stmts in child_blocks(stmt):
                yield from _local_functions(stmts)


def function_scopes(func: Function, qualified: str) -> Iterator[tuple[str, Function]]:
    """func and every local function nested in it, outermost first."""
    yield (qualified, func)
    for inner in _local_functions(func.body):
        yield from function_scopes(inner, qualified + "." + inner.name)


def module_scopes(module: Module) -> list[tuple[str, Function]]:
    """Every function scope of a module with its qualified name.

    Top-level functions are named f, methods Class.m, and local functions
    nested in either outer.helper.
    """
    scopes: list[tuple[str, Function]] = []
    for func in module.functions:
        scopes.extend(function_scopes(func, func.name))
    for cls in module.classes:
        for method in cls.methods:
            scopes.extend(function_scopes(method, cls.name + "." + method.name))
    return scopes


def generate_module_locals(
    module: Module, globals: set[str] | None = None
) -> list[LocalsError]:
    """Run the pass on every function, method and local function of a module.

    globals adds to module.globals. Each local function is its own scope.

    Functions that fail are left unchanged and reported; the others are
    still rewritten.
    """
    names = frozenset(module.globals) | frozenset(globals or ())
    errors: list[LocalsError] = []
    # Scopes are collected before rewriting; the pass never moves a LocalFunction
    for qualified, func in module_scopes(module):
        try:
            generate_function_locals(func, names)
        except UnsupportedConstructError as e:
            errors.append(LocalsError(e.loc.line, e.loc.col, qualified, e.msg))
    return errors
