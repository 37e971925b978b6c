"""Write-site indexing for the declaration pass.

Walks one function body, recording for every statement the block it lives
in, and for every local name the ancestor paths of the statements that
write it. Writes are found at statement level (plain and compound
assignments) and inside expressions evaluated mid-statement (loop tests,
conditions, iteration sources).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..codemodel import (
    ROOT_BLOCK,
    Assign,
    AssignExpr,
    Await,
    BinaryOp,
    BlockRef,
    BoolLit,
    Break,
    Call,
    Cast,
    Comment,
    Continue,
    DoWhile,
    Expr,
    ExprStmt,
    FieldAccess,
    FloatLit,
    Foreach,
    If,
    Index,
    IntLit,
    Lambda,
    ListLit,
    LocalFunction,
    NamedArg,
    New,
    NilLit,
    Path,
    Return,
    Stmt,
    StringLit,
    Ternary,
    This,
    Throw,
    TryCatch,
    TupleLit,
    TypeRef,
    UnaryOp,
    Using,
    Var,
    VarDecl,
    While,
    Yield,
    child_blocks,
)
from ..errors import LocalsInternalError, UnsupportedConstructError


# ============================================================
# WRITE INDEX
# ============================================================


@dataclass
class WriteIndex:
    """Scratch state for one function body.

    - stmts: handle -> statement, for every walked statement
    - parent_of: handle -> block the statement is a member of
    - blocks: block -> the live statement list (mutated by the rewriter)
    - writes: name -> write-site paths, in walk order
    - declared: names already introduced by explicit declarations
    """

    globals: frozenset[str]
    stmts: dict[int, Stmt] = field(default_factory=dict)
    parent_of: dict[int, BlockRef] = field(default_factory=dict)
    blocks: dict[BlockRef, list[Stmt]] = field(default_factory=dict)
    writes: dict[str, list[Path]] = field(default_factory=dict)
    declared: set[str] = field(default_factory=set)

    def record_write(self, name: str, path: Path) -> None:
        if name in self.globals:
            return
        if name not in self.writes:
            self.writes[name] = []
        self.writes[name].append(path)

    def stmt_at(self, handle: int) -> Stmt:
        if handle not in self.stmts:
            raise LocalsInternalError("statement " + str(handle) + " was never indexed")
        return self.stmts[handle]

    def block_of(self, handle: int) -> BlockRef:
        if handle not in self.parent_of:
            raise LocalsInternalError(
                "no parent block recorded for statement " + str(handle)
            )
        return self.parent_of[handle]


def index_body(body: list[Stmt], globals: set[str] | frozenset[str]) -> WriteIndex:
    """Index a function body. Raises UnsupportedConstructError."""
    index = WriteIndex(globals=frozenset(globals))
    _index_block(index, (), ROOT_BLOCK, body)
    return index


# ============================================================
# STATEMENT DISPATCH
# ============================================================


def _index_block(
    index: WriteIndex, base: Path, ref: BlockRef, stmts: list[Stmt]
) -> None:
    index.blocks[ref] = stmts
    for stmt in stmts:
        path = base + (stmt.sid,)
        index.stmts[stmt.sid] = stmt
        index.parent_of[stmt.sid] = ref
        _index_stmt(index, path, stmt)


def _index_children(index: WriteIndex, path: Path, stmt: Stmt) -> None:
    """Walk every block of stmt as siblings under the same path."""
    for ref, stmts in child_blocks(stmt):
        _index_block(index, path, ref, stmts)


def _index_stmt(index: WriteIndex, path: Path, stmt: Stmt) -> None:
    match stmt:
        case Assign(target=Var(name=name)):
            index.record_write(name, path)
        case Assign():
            pass
        case If(cond=cond):
            _scan_expr(index, path, stmt, cond)
            _index_children(index, path, stmt)
        case While(cond=cond) | DoWhile(cond=cond):
            _scan_expr(index, path, stmt, cond)
            _index_children(index, path, stmt)
        case Foreach(iterable=iterable):
            _scan_expr(index, path, stmt, iterable)
            _index_children(index, path, stmt)
        case TryCatch():
            _index_children(index, path, stmt)
        case VarDecl(name=name):
            index.declared.add(name)
        case LocalFunction(func=func):
            index.declared.add(func.name)
        # Terminal: nothing nested is walked
        case Break() | Continue() | Return() | Throw() | Using():
            pass
        case Comment() | ExprStmt() | Yield():
            pass
        case _:
            raise LocalsInternalError(
                "unhandled statement kind " + type(stmt).__name__
            )


# ============================================================
# EXPRESSION DISPATCH
# ============================================================


def _scan_exprs(index: WriteIndex, path: Path, stmt: Stmt, exprs: list[Expr]) -> None:
    for e in exprs:
        _scan_expr(index, path, stmt, e)


def _scan_expr(index: WriteIndex, path: Path, stmt: Stmt, expr: Expr) -> None:
    """Record writes embedded in expr, attributing them to stmt's path."""
    match expr:
        case AssignExpr(target=Var(name=name), value=value):
            index.record_write(name, path)
            _scan_expr(index, path, stmt, value)
        case AssignExpr(target=target):
            raise UnsupportedConstructError(type(target).__name__, path, stmt.loc)
        case Call(func=func, args=args):
            _scan_expr(index, path, stmt, func)
            _scan_exprs(index, path, stmt, args)
        case Await(expr=inner) | Cast(expr=inner):
            _scan_expr(index, path, stmt, inner)
        case FieldAccess(obj=obj):
            _scan_expr(index, path, stmt, obj)
        case Index(obj=obj, index=idx):
            _scan_expr(index, path, stmt, obj)
            _scan_expr(index, path, stmt, idx)
        case UnaryOp(operand=operand):
            _scan_expr(index, path, stmt, operand)
        case BinaryOp(left=left, right=right):
            _scan_expr(index, path, stmt, left)
            _scan_expr(index, path, stmt, right)
        case Ternary(cond=cond, then_expr=then_expr, else_expr=else_expr):
            _scan_expr(index, path, stmt, cond)
            _scan_expr(index, path, stmt, then_expr)
            _scan_expr(index, path, stmt, else_expr)
        case NamedArg(value=value):
            _scan_expr(index, path, stmt, value)
        case New(args=elements) | ListLit(elements=elements) | TupleLit(
            elements=elements
        ):
            _scan_exprs(index, path, stmt, elements)
        case Lambda(params=params):
            # Body is its own scope; defaults run in ours
            for p in params:
                if p.default is not None:
                    _scan_expr(index, path, stmt, p.default)
        case Var() | This() | TypeRef():
            pass
        case NilLit() | IntLit() | FloatLit() | StringLit() | BoolLit():
            pass
        case _:
            raise LocalsInternalError(
                "unhandled expression kind " + type(expr).__name__
            )
