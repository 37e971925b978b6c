"""Tests for common-path resolution."""

import pytest

from localgen.codemodel import (
    ROOT_BLOCK,
    Assign,
    AssignExpr,
    BlockRef,
    CatchClause,
    If,
    IntLit,
    TryCatch,
    Var,
    While,
)
from localgen.errors import LocalsInternalError
from localgen.middleend.common_path import NO_COMMON, find_common, resolve_common
from localgen.middleend.writes import index_body


def _assign(name: str) -> Assign:
    return Assign(Var(name), IntLit(1))


def _resolve(body, name: str) -> tuple[int, list]:
    index = index_body(body, set())
    paths = index.writes[name]
    return resolve_common(paths, index.parent_of), paths


def test_single_write_is_its_own_site():
    inner = _assign("x")
    body = [While(Var("p"), [If(Var("q"), [inner])])]
    bound, paths = _resolve(body, "x")
    assert bound == 2
    assert paths[0][bound] == inner.sid


def test_siblings_in_one_block():
    first = _assign("x")
    body = [first, _assign("y"), _assign("x")]
    bound, paths = _resolve(body, "x")
    assert bound == 0
    assert paths[0][bound] == first.sid


def test_branches_resolve_to_conditional():
    stmt = If(Var("c"), [_assign("x")], [_assign("x")])
    bound, paths = _resolve([stmt], "x")
    assert bound == 0
    assert paths[0][bound] == stmt.sid


def test_sibling_loops_resolve_to_first_loop():
    a = While(Var("p"), [_assign("i")])
    b = While(Var("q"), [_assign("i")])
    bound, paths = _resolve([a, b], "i")
    assert bound == 0
    assert paths[0][bound] == a.sid


def test_divergence_below_shared_ancestors():
    cond = If(Var("c"), [_assign("x")], [_assign("x")])
    stmt = TryCatch([cond], [CatchClause([])])
    bound, paths = _resolve([stmt], "x")
    assert bound == 1
    assert paths[0][bound] == cond.sid


def test_write_at_root_then_nested():
    first = _assign("x")
    later = If(Var("c"), [_assign("x")])
    bound, paths = _resolve([first, later], "x")
    assert bound == 0
    assert paths[0][bound] == first.sid


def test_loop_test_and_body_resolve_to_loop():
    # A write in the loop test is recorded at the loop itself
    loop = While(AssignExpr(Var("x"), Var("y")), [_assign("x")])
    bound, paths = _resolve([loop], "x")
    assert bound == 0
    assert paths[0][bound] == loop.sid


def test_identical_paths_keep_bound():
    parent_of = {1: ROOT_BLOCK, 2: BlockRef(1, "body")}
    assert find_common((1, 2), (1, 2), 1, parent_of) == 1
    assert resolve_common([(1, 2), (1, 2), (1, 2)], parent_of) == 1


def test_bound_clamped_to_shorter_path():
    parent_of = {1: ROOT_BLOCK, 2: BlockRef(1, "body"), 3: BlockRef(2, "then")}
    assert find_common((1, 2, 3), (1,), 2, parent_of) == 0
    assert find_common((1,), (1, 2, 3), 0, parent_of) == 0


def test_existing_bound_only_tightens():
    parent_of = {1: ROOT_BLOCK, 2: BlockRef(1, "body"), 3: BlockRef(2, "then")}
    assert find_common((1, 2, 3), (1, 2, 3), 1, parent_of) == 1


def test_different_blocks_at_top_means_no_common():
    parent_of = {1: ROOT_BLOCK, 2: BlockRef(9, "then")}
    assert find_common((1,), (2,), 0, parent_of) == -1
    assert resolve_common([(1,), (2,)], parent_of) == NO_COMMON


def test_no_common_is_sticky():
    parent_of = {1: ROOT_BLOCK, 2: BlockRef(9, "then"), 3: ROOT_BLOCK}
    assert resolve_common([(1,), (2,), (1,)], parent_of) == NO_COMMON


def test_missing_parent_record():
    with pytest.raises(LocalsInternalError):
        find_common((1,), (2,), 0, {1: ROOT_BLOCK})
