"""Tests for loading and dumping serialized modules."""

import json

import pytest

from localgen import generate_module_locals
from localgen.codemodel import Assign, If, IntLit, Var, VarDecl, While
from localgen.middleend.declarations import Placement
from localgen.middleend.writes import index_body
from localgen.serialize import (
    LoadError,
    from_json,
    load_module,
    load_stmt,
    serialize,
    to_json,
    write_index_to_dict,
)


def _var(name: str) -> dict:
    return {"_type": "Var", "name": name}


def _int(n: int) -> dict:
    return {"_type": "IntLit", "value": n}


def _assign(name: str, value: dict, line: int = 0) -> dict:
    return {
        "_type": "Assign",
        "target": _var(name),
        "value": value,
        "loc": {"line": line, "col": 4},
    }


MODULE = {
    "_type": "Module",
    "name": "demo",
    "globals": ["LIMIT"],
    "functions": [
        {
            "_type": "Function",
            "name": "pick",
            "params": ["flag"],
            "body": [
                {
                    "_type": "If",
                    "cond": _var("flag"),
                    "then_body": [_assign("x", _int(1), 2)],
                    "else_body": [_assign("x", _int(2), 4)],
                },
                _assign("LIMIT", _int(3), 5),
                _assign("y", {"_type": "Call", "func": _var("compute")}, 6),
                {"_type": "Return", "value": _var("x")},
            ],
        }
    ],
    "classes": [
        {
            "_type": "ClassDef",
            "name": "Reader",
            "methods": [
                {
                    "name": "close",
                    "params": [{"name": "self"}],
                    "body": [_assign("handle", {"_type": "NilLit"}, 9)],
                }
            ],
        }
    ],
}


def test_load_builds_tree():
    module = load_module(MODULE)
    func = module.functions[0]
    assert module.globals == ["LIMIT"]
    assert [p.name for p in func.params] == ["flag"]
    assert isinstance(func.body[0], If)
    assert func.body[2].loc.line == 6
    assert module.classes[0].methods[0].params[0].name == "self"


def test_loaded_statements_get_distinct_handles():
    a = load_module(MODULE).functions[0]
    b = load_module(MODULE).functions[0]
    assert a.body[0].sid != b.body[0].sid
    assert a.body[0] == b.body[0]


def test_rewrite_loaded_module():
    module = load_module(MODULE)
    assert generate_module_locals(module) == []
    out = serialize(module)
    body = out["functions"][0]["body"]
    assert body[0] == {
        "_type": "VarDecl",
        "loc": {"_type": "Loc", "line": 0, "col": 0},
        "name": "x",
        "typ": "nullable",
        "value": None,
    }
    assert body[2]["_type"] == "Assign"
    assert body[3]["_type"] == "VarDecl"
    assert body[3]["typ"] == "inferred"
    assert body[3]["loc"] == {"_type": "Loc", "line": 6, "col": 4}
    method_body = out["classes"][0]["methods"][0]["body"]
    assert method_body[0]["_type"] == "VarDecl"
    assert method_body[0]["typ"] == "nullable"


def test_dump_then_load_gives_equal_tree():
    module = load_module(MODULE)
    generate_module_locals(module)
    again = from_json(to_json(module))
    assert again == module


def test_handles_not_serialized():
    out = serialize(Assign(Var("x"), IntLit(1)))
    assert "sid" not in out


def test_serialize_placement():
    p = Placement("x", "hoist", (3, 4), 0)
    assert serialize(p) == {
        "_type": "Placement",
        "name": "x",
        "kind": "hoist",
        "path": [3, 4],
        "bound": 0,
        "target": None,
    }


def test_write_index_dump():
    first = Assign(Var("b"), IntLit(1))
    loop = While(Var("p"), [Assign(Var("b"), IntLit(2))])
    index = index_body([VarDecl("a", "inferred", IntLit(0)), first, loop], set())
    out = write_index_to_dict(index)
    assert out["declared"] == ["a"]
    assert out["writes"] == {"b": [[first.sid], [loop.sid, loop.body[0].sid]]}
    json.dumps(out)


@pytest.mark.parametrize(
    "data,message",
    [
        ({"_type": "Goto"}, "unknown statement type 'Goto'"),
        ({"_type": "Assign", "target": _var("x")}, "Assign: missing 'value'"),
        ({"_type": "Assign", "target": {"_type": "Spread"}, "value": _int(1)}, "unknown expression type 'Spread'"),
        ({"_type": "VarDecl", "name": "x", "typ": "auto"}, "unknown declaration type 'auto'"),
        ("x = 1", "statement: expected object"),
    ],
)
def test_load_errors(data, message):
    with pytest.raises(LoadError) as exc:
        load_stmt(data)
    assert message in str(exc.value)


def test_invalid_json():
    with pytest.raises(LoadError) as exc:
        from_json("{not json")
    assert "invalid JSON" in str(exc.value)


def test_globals_must_be_a_list():
    with pytest.raises(LoadError):
        load_module({"name": "m", "globals": "LIMIT"})


def _deep_unary(depth: int) -> str:
    head = '{"_type": "UnaryOp", "op": "-", "operand": ' * depth
    return head + '{"_type": "IntLit", "value": 1}' + "}" * depth


def test_deeply_nested_input():
    stmt = '{"_type": "ExprStmt", "expr": ' + _deep_unary(5000) + "}"
    text = '{"name": "m", "functions": [{"name": "f", "body": [' + stmt + "]}]}"
    with pytest.raises(LoadError) as exc:
        from_json(text)
    assert "nested too deeply" in str(exc.value)
