"""Declaration placement and rewriting.

Placement decisions for every variable are computed first and are
immutable; the tree is then mutated in a single pass. Resolving one
variable therefore never observes another variable's rewrite.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ..codemodel import (
    Assign,
    DeclType,
    Expr,
    NilLit,
    Path,
    Stmt,
    Var,
    VarDecl,
)
from ..errors import LocalsInternalError
from .common_path import NO_COMMON, resolve_common
from .writes import WriteIndex


PlacementKind = Literal["initialize", "hoist"]


@dataclass(frozen=True)
class Placement:
    """Where one variable's declaration goes.

    - initialize: the plain assignment with handle target becomes a
      declare-and-initialize statement at the same position
    - hoist: a bare declaration is inserted at the top of the function body

    bound is the resolved index into path (NO_COMMON if none).
    """

    name: str
    kind: PlacementKind
    path: Path
    bound: int
    target: int | None = None


def decl_type_for(value: Expr | None) -> DeclType:
    """Nullable for a literal null initializer, inferred otherwise."""
    if value is None or isinstance(value, NilLit):
        return "nullable"
    return "inferred"


def _is_plain_assign(stmt: Stmt, name: str) -> bool:
    return (
        isinstance(stmt, Assign)
        and stmt.op is None
        and isinstance(stmt.target, Var)
        and stmt.target.name == name
    )


def plan_declarations(index: WriteIndex, params: set[str]) -> list[Placement]:
    """Decide a placement for every undeclared local, in first-write order."""
    placements: list[Placement] = []
    claimed: set[int] = set()
    for name, paths in index.writes.items():
        if name in params or name in index.declared:
            continue
        first = paths[0]
        bound = resolve_common(paths, index.parent_of)
        if bound != NO_COMMON:
            handle = first[bound]
            stmt = index.stmt_at(handle)
            # First claim on a statement wins
            if _is_plain_assign(stmt, name) and handle not in claimed:
                claimed.add(handle)
                placements.append(
                    Placement(name, "initialize", first, bound, target=handle)
                )
                continue
        placements.append(Placement(name, "hoist", first, bound))
    return placements


def apply_declarations(
    index: WriteIndex, body: list[Stmt], placements: list[Placement]
) -> None:
    """Mutate the tree according to placements."""
    hoisted: list[Stmt] = []
    for p in placements:
        if p.kind == "initialize":
            if p.target is None:
                raise LocalsInternalError(
                    "in-place placement for " + p.name + " has no target"
                )
            _replace_with_declaration(index, p.name, p.target)
        else:
            hoisted.append(VarDecl(p.name, "nullable"))
    body[0:0] = hoisted


def _replace_with_declaration(index: WriteIndex, name: str, handle: int) -> None:
    stmt = index.stmt_at(handle)
    if not isinstance(stmt, Assign):
        raise LocalsInternalError(
            "statement " + str(handle) + " is not an assignment to " + name
        )
    block = index.blocks[index.block_of(handle)]
    i = 0
    while i < len(block):
        if block[i].sid == handle:
            block[i] = VarDecl(
                name, decl_type_for(stmt.value), stmt.value, loc=stmt.loc
            )
            return
        i += 1
    raise LocalsInternalError(
        "statement " + str(handle) + " is not in its recorded block"
    )
