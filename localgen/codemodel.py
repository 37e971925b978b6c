"""localgen code model - statement trees handed over by the frontend.

This module defines the tree the local-variable pass reads and rewrites.
Each node's docstring documents its semantics and invariants.

Architecture:
    Source -> Frontend -> [code model] -> localgen (declaration pass) -> Printer -> Target

The frontend produces complete trees (no partial nodes). The declaration pass
mutates function bodies in place. The printer renders VarDecl.typ per target.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Literal


# ============================================================
# SOURCE LOCATIONS
# ============================================================


@dataclass(unsafe_hash=True)
class Loc:
    """Source location for error messages.

    Invariants:
    - line >= 1 for valid locations (0 indicates unknown)
    - col >= 0 (0-indexed within line)
    """

    line: int  # 1-indexed, 0 = unknown
    col: int  # 0-indexed


def loc_unknown() -> Loc:
    """Factory for unknown source location."""
    return Loc(0, 0)


# ============================================================
# STATEMENT HANDLES
#
# Every statement gets an opaque integer handle when it is constructed.
# Handles, not object or structural equality, identify statements in
# paths and block records. Handle 0 is reserved for the function root.
# ============================================================

ROOT: int = 0

_handles = itertools.count(1)


def _next_sid() -> int:
    return next(_handles)


@dataclass(frozen=True)
class BlockRef:
    """Identity of one child statement sequence.

    owner is the handle of the statement owning the block (ROOT for the
    function body); slot names the block within its owner.

    | Owner      | Slots                          |
    |------------|--------------------------------|
    | (function) | body                           |
    | If         | then, else                     |
    | While      | body                           |
    | DoWhile    | body                           |
    | Foreach    | body                           |
    | TryCatch   | body, catch:<i>, finally       |
    """

    owner: int
    slot: str


ROOT_BLOCK = BlockRef(ROOT, "body")


Path = tuple[int, ...]
"""Statement handles from the function root to a statement, inclusive."""


DeclType = Literal["inferred", "nullable"]
"""Type annotation chosen for a generated declaration.

| Kind     | Meaning                               | C#     | TS        | Go            |
|----------|---------------------------------------|--------|-----------|---------------|
| inferred | Leave the type to target inference    | var    | let       | :=            |
| nullable | Explicit type able to hold null/absent | object | let: any  | var x any     |
"""


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(kw_only=True)
class Expr:
    """Base for all expressions. Abstract."""

    loc: Loc = field(default_factory=loc_unknown)


# --- Literals ---


@dataclass
class NilLit(Expr):
    """Null/None literal."""


@dataclass
class IntLit(Expr):
    """Integer literal."""

    value: int


@dataclass
class FloatLit(Expr):
    """Floating-point literal."""

    value: float


@dataclass
class StringLit(Expr):
    """String literal."""

    value: str


@dataclass
class BoolLit(Expr):
    """Boolean literal."""

    value: bool


# --- Names and access ---


@dataclass
class Var(Expr):
    """Variable reference (read, or write target of an assignment)."""

    name: str


@dataclass
class This(Expr):
    """Reference to the receiver object."""


@dataclass
class TypeRef(Expr):
    """Reference to a type used as a value (static access, casts)."""

    name: str


@dataclass
class FieldAccess(Expr):
    """Field access: obj.field"""

    obj: Expr
    field: str


@dataclass
class Index(Expr):
    """Indexing: obj[index]"""

    obj: Expr
    index: Expr


# --- Operators ---


@dataclass
class AssignExpr(Expr):
    """Assignment used as an expression: (target = value)

    Semantics: store value into target, evaluate to value.

    Invariants:
    - target is Var, FieldAccess, Index, TupleLit or ListLit
    """

    target: Expr
    value: Expr


@dataclass
class UnaryOp(Expr):
    """Unary operator: op operand"""

    op: str
    operand: Expr


@dataclass
class BinaryOp(Expr):
    """Binary operator: left op right

    Invariants:
    - op is never "=" (assignments are AssignExpr)
    """

    op: str
    left: Expr
    right: Expr


@dataclass
class Ternary(Expr):
    """Conditional expression: cond ? then_expr : else_expr"""

    cond: Expr
    then_expr: Expr
    else_expr: Expr


@dataclass
class Cast(Expr):
    """Explicit conversion: (typ) expr"""

    typ: str
    expr: Expr


# --- Calls ---


@dataclass
class Call(Expr):
    """Call or application: func(args)"""

    func: Expr
    args: list[Expr] = field(default_factory=list)


@dataclass
class NamedArg(Expr):
    """Keyword argument inside a call: name = value"""

    name: str
    value: Expr


@dataclass
class New(Expr):
    """Object creation: new typ(args)"""

    typ: str
    args: list[Expr] = field(default_factory=list)


@dataclass
class Await(Expr):
    """Await an asynchronous result."""

    expr: Expr


@dataclass
class Lambda(Expr):
    """Anonymous function.

    The body is a separate scope. Parameter defaults are evaluated in the
    enclosing scope.
    """

    params: list[Param]
    body: Expr


# --- Collections ---


@dataclass
class ListLit(Expr):
    """List or array initializer: [a, b, c]"""

    elements: list[Expr] = field(default_factory=list)


@dataclass
class TupleLit(Expr):
    """Tuple: (a, b). Also a destructuring pattern when used as a target."""

    elements: list[Expr] = field(default_factory=list)


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(kw_only=True)
class Stmt:
    """Base for all statements. Abstract.

    Invariants:
    - sid is unique across every statement constructed in the process
    """

    loc: Loc = field(default_factory=loc_unknown)
    sid: int = field(default_factory=_next_sid, compare=False, repr=False)


@dataclass
class Assign(Stmt):
    """Assignment statement: target = value, or target op= value.

    Semantics:
    - op is None for a plain assignment
    - op is the operator of a compound assignment ("+" for +=)

    In the source language a plain assignment to an undeclared name
    implicitly creates the variable.
    """

    target: Expr
    value: Expr
    op: str | None = None


@dataclass
class If(Stmt):
    """Conditional statement.

    Blocks: then_body (slot "then"), else_body (slot "else").
    """

    cond: Expr
    then_body: list[Stmt]
    else_body: list[Stmt] = field(default_factory=list)


@dataclass
class While(Stmt):
    """Pre-test loop: test cond, then run body."""

    cond: Expr
    body: list[Stmt]


@dataclass
class DoWhile(Stmt):
    """Post-test loop: run body, then test cond."""

    body: list[Stmt]
    cond: Expr


@dataclass
class Foreach(Stmt):
    """Iterate over a collection.

    target is bound by the loop itself (the target language declares it
    in the loop header).
    """

    target: Expr
    iterable: Expr
    body: list[Stmt]


@dataclass
class CatchClause:
    """One exception handler of a TryCatch."""

    body: list[Stmt]
    catch_type: str | None = None
    catch_var: str | None = None
    loc: Loc = field(default_factory=loc_unknown)


@dataclass
class TryCatch(Stmt):
    """Exception handling: try / catch* / finally.

    Blocks: body (slot "body"), each catches[i].body (slot "catch:<i>"),
    finally_body (slot "finally").
    """

    body: list[Stmt]
    catches: list[CatchClause] = field(default_factory=list)
    finally_body: list[Stmt] = field(default_factory=list)


@dataclass
class Break(Stmt):
    """Break from loop."""


@dataclass
class Continue(Stmt):
    """Continue to next iteration."""


@dataclass
class Return(Stmt):
    """Return from function. value is None for a bare return."""

    value: Expr | None = None


@dataclass
class Throw(Stmt):
    """Raise an exception. expr is None for a re-throw."""

    expr: Expr | None = None


@dataclass
class Using(Stmt):
    """Scoped resource: acquire resources, run body, dispose."""

    resources: list[Expr]
    body: list[Stmt]


@dataclass
class VarDecl(Stmt):
    """Explicit variable declaration with optional initializer.

    Semantics:
    - Introduces name into the enclosing block
    - If value is None, the variable starts at the default value of typ

    | Target | inferred      | nullable             |
    |--------|---------------|----------------------|
    | C#     | var x = v;    | object x = v;        |
    | Java   | var x = v;    | Object x = v;        |
    | TS     | let x = v;    | let x: any = v;      |
    """

    name: str
    typ: DeclType
    value: Expr | None = None


@dataclass
class LocalFunction(Stmt):
    """Nested function definition. Its body is a separate scope."""

    func: Function


@dataclass
class Comment(Stmt):
    """Comment carried through to the output."""

    text: str


@dataclass
class ExprStmt(Stmt):
    """Expression evaluated for side effects, result discarded."""

    expr: Expr


@dataclass
class Yield(Stmt):
    """Produce a value from a generator."""

    value: Expr | None = None


# ============================================================
# DEFINITIONS
# ============================================================


@dataclass
class Param:
    """Function parameter. Parameters are bound by the signature."""

    name: str
    default: Expr | None = None
    loc: Loc = field(default_factory=loc_unknown)


@dataclass
class Function:
    """Function or method definition.

    Invariants:
    - Parameter names are unique
    - body is fully constructed before any pass runs
    """

    name: str
    params: list[Param] = field(default_factory=list)
    body: list[Stmt] = field(default_factory=list)
    loc: Loc = field(default_factory=loc_unknown)


@dataclass
class ClassDef:
    """Class definition; only its methods matter here."""

    name: str
    methods: list[Function] = field(default_factory=list)
    loc: Loc = field(default_factory=loc_unknown)


@dataclass
class Module:
    """A complete translation unit.

    globals lists names owned by module scope (decided by the symbol table
    of the frontend). They are never declared as locals.
    """

    name: str
    functions: list[Function] = field(default_factory=list)
    classes: list[ClassDef] = field(default_factory=list)
    globals: list[str] = field(default_factory=list)


def child_blocks(stmt: Stmt) -> list[tuple[BlockRef, list[Stmt]]]:
    """Blocks owned by a statement, in source order."""
    match stmt:
        case If(then_body=then_body, else_body=else_body):
            return [
                (BlockRef(stmt.sid, "then"), then_body),
                (BlockRef(stmt.sid, "else"), else_body),
            ]
        case While(body=body) | DoWhile(body=body) | Foreach(body=body):
            return [(BlockRef(stmt.sid, "body"), body)]
        case TryCatch(body=body, catches=catches, finally_body=finally_body):
            result = [(BlockRef(stmt.sid, "body"), body)]
            for i, clause in enumerate(catches):
                result.append((BlockRef(stmt.sid, "catch:" + str(i)), clause.body))
            result.append((BlockRef(stmt.sid, "finally"), finally_body))
            return result
    return []
