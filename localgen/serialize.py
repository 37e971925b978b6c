"""Serialization of code model objects to and from JSON-compatible dicts.

Every node becomes a dict tagged with "_type". Statement handles are not
serialized: loading always builds fresh statements with fresh handles.
"""

from __future__ import annotations

import json

from .codemodel import (
    Assign,
    AssignExpr,
    Await,
    BinaryOp,
    BoolLit,
    Break,
    Call,
    Cast,
    CatchClause,
    ClassDef,
    Comment,
    Continue,
    DoWhile,
    Expr,
    ExprStmt,
    FieldAccess,
    FloatLit,
    Foreach,
    Function,
    If,
    Index,
    IntLit,
    Lambda,
    ListLit,
    LocalFunction,
    Loc,
    Module,
    NamedArg,
    New,
    NilLit,
    Param,
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
    loc_unknown,
)
from .middleend.declarations import Placement
from .middleend.writes import WriteIndex


class LoadError(Exception):
    """Malformed serialized tree."""


# ============================================================
# DUMPING
# ============================================================


def serialize(obj: object) -> object:
    """Recursively serialize an object to a JSON-compatible structure."""
    if obj is None:
        return None
    if isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, (list, tuple)):
        return [serialize(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): serialize(v) for k, v in obj.items()}
    if isinstance(obj, Expr):
        return _serialize_expr(obj)
    if isinstance(obj, Stmt):
        return _serialize_stmt(obj)
    if isinstance(obj, Loc):
        return {"_type": "Loc", "line": obj.line, "col": obj.col}
    if isinstance(obj, CatchClause):
        return {
            "_type": "CatchClause",
            "body": serialize(obj.body),
            "catch_type": obj.catch_type,
            "catch_var": obj.catch_var,
            "loc": serialize(obj.loc),
        }
    if isinstance(obj, Param):
        return {
            "_type": "Param",
            "name": obj.name,
            "default": serialize(obj.default),
            "loc": serialize(obj.loc),
        }
    if isinstance(obj, Function):
        return {
            "_type": "Function",
            "name": obj.name,
            "params": serialize(obj.params),
            "body": serialize(obj.body),
            "loc": serialize(obj.loc),
        }
    if isinstance(obj, ClassDef):
        return {
            "_type": "ClassDef",
            "name": obj.name,
            "methods": serialize(obj.methods),
            "loc": serialize(obj.loc),
        }
    if isinstance(obj, Module):
        return {
            "_type": "Module",
            "name": obj.name,
            "functions": serialize(obj.functions),
            "classes": serialize(obj.classes),
            "globals": list(obj.globals),
        }
    if isinstance(obj, Placement):
        return {
            "_type": "Placement",
            "name": obj.name,
            "kind": obj.kind,
            "path": list(obj.path),
            "bound": obj.bound,
            "target": obj.target,
        }
    raise TypeError("cannot serialize " + type(obj).__name__)


def _serialize_expr(obj: Expr) -> dict[str, object]:
    """Serialize Expr subclasses."""
    d: dict[str, object] = {"_type": type(obj).__name__, "loc": serialize(obj.loc)}
    if isinstance(obj, (IntLit, FloatLit, StringLit, BoolLit)):
        d["value"] = obj.value
    elif isinstance(obj, (Var, NamedArg)):
        d["name"] = obj.name
        if isinstance(obj, NamedArg):
            d["value"] = serialize(obj.value)
    elif isinstance(obj, TypeRef):
        d["name"] = obj.name
    elif isinstance(obj, FieldAccess):
        d["obj"] = serialize(obj.obj)
        d["field"] = obj.field
    elif isinstance(obj, Index):
        d["obj"] = serialize(obj.obj)
        d["index"] = serialize(obj.index)
    elif isinstance(obj, AssignExpr):
        d["target"] = serialize(obj.target)
        d["value"] = serialize(obj.value)
    elif isinstance(obj, UnaryOp):
        d["op"] = obj.op
        d["operand"] = serialize(obj.operand)
    elif isinstance(obj, BinaryOp):
        d["op"] = obj.op
        d["left"] = serialize(obj.left)
        d["right"] = serialize(obj.right)
    elif isinstance(obj, Ternary):
        d["cond"] = serialize(obj.cond)
        d["then_expr"] = serialize(obj.then_expr)
        d["else_expr"] = serialize(obj.else_expr)
    elif isinstance(obj, Cast):
        d["typ"] = obj.typ
        d["expr"] = serialize(obj.expr)
    elif isinstance(obj, Call):
        d["func"] = serialize(obj.func)
        d["args"] = serialize(obj.args)
    elif isinstance(obj, New):
        d["typ"] = obj.typ
        d["args"] = serialize(obj.args)
    elif isinstance(obj, Await):
        d["expr"] = serialize(obj.expr)
    elif isinstance(obj, Lambda):
        d["params"] = serialize(obj.params)
        d["body"] = serialize(obj.body)
    elif isinstance(obj, (ListLit, TupleLit)):
        d["elements"] = serialize(obj.elements)
    elif not isinstance(obj, (NilLit, This)):
        raise TypeError("cannot serialize " + type(obj).__name__)
    return d


def _serialize_stmt(obj: Stmt) -> dict[str, object]:
    """Serialize Stmt subclasses."""
    d: dict[str, object] = {"_type": type(obj).__name__, "loc": serialize(obj.loc)}
    if isinstance(obj, Assign):
        d["target"] = serialize(obj.target)
        d["value"] = serialize(obj.value)
        d["op"] = obj.op
    elif isinstance(obj, If):
        d["cond"] = serialize(obj.cond)
        d["then_body"] = serialize(obj.then_body)
        d["else_body"] = serialize(obj.else_body)
    elif isinstance(obj, (While, DoWhile)):
        d["cond"] = serialize(obj.cond)
        d["body"] = serialize(obj.body)
    elif isinstance(obj, Foreach):
        d["target"] = serialize(obj.target)
        d["iterable"] = serialize(obj.iterable)
        d["body"] = serialize(obj.body)
    elif isinstance(obj, TryCatch):
        d["body"] = serialize(obj.body)
        d["catches"] = serialize(obj.catches)
        d["finally_body"] = serialize(obj.finally_body)
    elif isinstance(obj, (Return, Yield)):
        d["value"] = serialize(obj.value)
    elif isinstance(obj, Throw):
        d["expr"] = serialize(obj.expr)
    elif isinstance(obj, Using):
        d["resources"] = serialize(obj.resources)
        d["body"] = serialize(obj.body)
    elif isinstance(obj, VarDecl):
        d["name"] = obj.name
        d["typ"] = obj.typ
        d["value"] = serialize(obj.value)
    elif isinstance(obj, LocalFunction):
        d["func"] = serialize(obj.func)
    elif isinstance(obj, Comment):
        d["text"] = obj.text
    elif isinstance(obj, ExprStmt):
        d["expr"] = serialize(obj.expr)
    elif not isinstance(obj, (Break, Continue)):
        raise TypeError("cannot serialize " + type(obj).__name__)
    return d


def write_index_to_dict(index: WriteIndex) -> dict[str, object]:
    """Serialize the write-site table: {"writes": {name: [path...]}, "declared": [...]}."""
    writes: dict[str, object] = {}
    for name, paths in index.writes.items():
        writes[name] = [list(p) for p in paths]
    return {"writes": writes, "declared": sorted(index.declared)}


def to_json(obj: object) -> str:
    """Serialize object to pretty-printed JSON."""
    return json.dumps(serialize(obj), indent=2)


# ============================================================
# LOADING
# ============================================================


def _get(d: dict, key: str) -> object:
    if key not in d:
        raise LoadError(str(d.get("_type", "node")) + ": missing '" + key + "'")
    return d[key]


def _load_loc(d: object) -> Loc:
    if d is None:
        return loc_unknown()
    if not isinstance(d, dict):
        raise LoadError("Loc: expected object")
    return Loc(int(d.get("line", 0)), int(d.get("col", 0)))


def _load_list(items: object, load) -> list:
    if items is None:
        return []
    if not isinstance(items, list):
        raise LoadError("expected list, got " + type(items).__name__)
    return [load(x) for x in items]


def _load_opt_expr(d: object) -> Expr | None:
    if d is None:
        return None
    return load_expr(d)


def load_expr(d: object) -> Expr:
    """Build an expression from its serialized form."""
    if not isinstance(d, dict):
        raise LoadError("expression: expected object")
    kind = d.get("_type")
    loc = _load_loc(d.get("loc"))
    if kind == "NilLit":
        return NilLit(loc=loc)
    if kind == "IntLit":
        return IntLit(int(_get(d, "value")), loc=loc)
    if kind == "FloatLit":
        return FloatLit(float(_get(d, "value")), loc=loc)
    if kind == "StringLit":
        return StringLit(str(_get(d, "value")), loc=loc)
    if kind == "BoolLit":
        return BoolLit(bool(_get(d, "value")), loc=loc)
    if kind == "Var":
        return Var(str(_get(d, "name")), loc=loc)
    if kind == "This":
        return This(loc=loc)
    if kind == "TypeRef":
        return TypeRef(str(_get(d, "name")), loc=loc)
    if kind == "FieldAccess":
        return FieldAccess(load_expr(_get(d, "obj")), str(_get(d, "field")), loc=loc)
    if kind == "Index":
        return Index(load_expr(_get(d, "obj")), load_expr(_get(d, "index")), loc=loc)
    if kind == "AssignExpr":
        return AssignExpr(
            load_expr(_get(d, "target")), load_expr(_get(d, "value")), loc=loc
        )
    if kind == "UnaryOp":
        return UnaryOp(str(_get(d, "op")), load_expr(_get(d, "operand")), loc=loc)
    if kind == "BinaryOp":
        return BinaryOp(
            str(_get(d, "op")),
            load_expr(_get(d, "left")),
            load_expr(_get(d, "right")),
            loc=loc,
        )
    if kind == "Ternary":
        return Ternary(
            load_expr(_get(d, "cond")),
            load_expr(_get(d, "then_expr")),
            load_expr(_get(d, "else_expr")),
            loc=loc,
        )
    if kind == "Cast":
        return Cast(str(_get(d, "typ")), load_expr(_get(d, "expr")), loc=loc)
    if kind == "Call":
        return Call(
            load_expr(_get(d, "func")), _load_list(d.get("args"), load_expr), loc=loc
        )
    if kind == "NamedArg":
        return NamedArg(str(_get(d, "name")), load_expr(_get(d, "value")), loc=loc)
    if kind == "New":
        return New(str(_get(d, "typ")), _load_list(d.get("args"), load_expr), loc=loc)
    if kind == "Await":
        return Await(load_expr(_get(d, "expr")), loc=loc)
    if kind == "Lambda":
        return Lambda(
            _load_list(d.get("params"), _load_param),
            load_expr(_get(d, "body")),
            loc=loc,
        )
    if kind == "ListLit":
        return ListLit(_load_list(d.get("elements"), load_expr), loc=loc)
    if kind == "TupleLit":
        return TupleLit(_load_list(d.get("elements"), load_expr), loc=loc)
    raise LoadError("unknown expression type '" + str(kind) + "'")


def _load_body(items: object) -> list[Stmt]:
    return _load_list(items, load_stmt)


def _load_catch(d: object) -> CatchClause:
    if not isinstance(d, dict):
        raise LoadError("CatchClause: expected object")
    return CatchClause(
        _load_body(d.get("body")),
        catch_type=d.get("catch_type"),
        catch_var=d.get("catch_var"),
        loc=_load_loc(d.get("loc")),
    )


def load_stmt(d: object) -> Stmt:
    """Build a statement (with a fresh handle) from its serialized form."""
    if not isinstance(d, dict):
        raise LoadError("statement: expected object")
    kind = d.get("_type")
    loc = _load_loc(d.get("loc"))
    if kind == "Assign":
        return Assign(
            load_expr(_get(d, "target")),
            load_expr(_get(d, "value")),
            op=d.get("op"),
            loc=loc,
        )
    if kind == "If":
        return If(
            load_expr(_get(d, "cond")),
            _load_body(d.get("then_body")),
            _load_body(d.get("else_body")),
            loc=loc,
        )
    if kind == "While":
        return While(load_expr(_get(d, "cond")), _load_body(d.get("body")), loc=loc)
    if kind == "DoWhile":
        return DoWhile(_load_body(d.get("body")), load_expr(_get(d, "cond")), loc=loc)
    if kind == "Foreach":
        return Foreach(
            load_expr(_get(d, "target")),
            load_expr(_get(d, "iterable")),
            _load_body(d.get("body")),
            loc=loc,
        )
    if kind == "TryCatch":
        return TryCatch(
            _load_body(d.get("body")),
            _load_list(d.get("catches"), _load_catch),
            _load_body(d.get("finally_body")),
            loc=loc,
        )
    if kind == "Break":
        return Break(loc=loc)
    if kind == "Continue":
        return Continue(loc=loc)
    if kind == "Return":
        return Return(_load_opt_expr(d.get("value")), loc=loc)
    if kind == "Yield":
        return Yield(_load_opt_expr(d.get("value")), loc=loc)
    if kind == "Throw":
        return Throw(_load_opt_expr(d.get("expr")), loc=loc)
    if kind == "Using":
        return Using(
            _load_list(d.get("resources"), load_expr),
            _load_body(d.get("body")),
            loc=loc,
        )
    if kind == "VarDecl":
        typ = d.get("typ", "inferred")
        if typ not in ("inferred", "nullable"):
            raise LoadError("VarDecl: unknown declaration type '" + str(typ) + "'")
        return VarDecl(
            str(_get(d, "name")), typ, _load_opt_expr(d.get("value")), loc=loc
        )
    if kind == "LocalFunction":
        return LocalFunction(load_function(_get(d, "func")), loc=loc)
    if kind == "Comment":
        return Comment(str(d.get("text", "")), loc=loc)
    if kind == "ExprStmt":
        return ExprStmt(load_expr(_get(d, "expr")), loc=loc)
    raise LoadError("unknown statement type '" + str(kind) + "'")


def _load_param(d: object) -> Param:
    if isinstance(d, str):
        return Param(d)
    if not isinstance(d, dict):
        raise LoadError("Param: expected object or name")
    return Param(
        str(_get(d, "name")),
        _load_opt_expr(d.get("default")),
        loc=_load_loc(d.get("loc")),
    )


def load_function(d: object) -> Function:
    """Build a function definition from its serialized form."""
    if not isinstance(d, dict):
        raise LoadError("Function: expected object")
    return Function(
        str(_get(d, "name")),
        _load_list(d.get("params"), _load_param),
        _load_body(d.get("body")),
        loc=_load_loc(d.get("loc")),
    )


def _load_class(d: object) -> ClassDef:
    if not isinstance(d, dict):
        raise LoadError("ClassDef: expected object")
    return ClassDef(
        str(_get(d, "name")),
        _load_list(d.get("methods"), load_function),
        loc=_load_loc(d.get("loc")),
    )


def load_module(d: object) -> Module:
    """Build a module from its serialized form."""
    if not isinstance(d, dict):
        raise LoadError("Module: expected object")
    globals_list = d.get("globals") or []
    if not isinstance(globals_list, list):
        raise LoadError("Module: 'globals' must be a list of names")
    return Module(
        str(d.get("name", "")),
        _load_list(d.get("functions"), load_function),
        _load_list(d.get("classes"), _load_class),
        [str(g) for g in globals_list],
    )


def from_json(text: str) -> Module:
    """Parse a serialized module. Raises LoadError."""
    try:
        data = json.loads(text)
    except RecursionError as e:
        raise LoadError("input nested too deeply") from e
    except ValueError as e:
        raise LoadError("invalid JSON: " + str(e)) from e
    try:
        return load_module(data)
    except RecursionError as e:
        raise LoadError("input nested too deeply") from e
