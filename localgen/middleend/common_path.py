"""Common-path resolution: the deepest statement shared by all write sites.

Paths are short (one entry per nesting level of a function body), so the
lowest common ancestor is computed pairwise against the first path instead
of through a general ancestor index.
"""

from __future__ import annotations

from ..codemodel import BlockRef, Path
from ..errors import LocalsInternalError

NO_COMMON: int = -1


def _block(parent_of: dict[int, BlockRef], handle: int) -> BlockRef:
    if handle not in parent_of:
        raise LocalsInternalError("no parent block recorded for statement " + str(handle))
    return parent_of[handle]


def find_common(
    first: Path, other: Path, bound: int, parent_of: dict[int, BlockRef]
) -> int:
    """Tighten bound (an index into first) so that it is shared with other.

    At each depth: different parent blocks mean the paths split one level
    up; same block but different statements means they are siblings and
    that depth is the last one shared.
    """
    bound = min(bound, len(first) - 1, len(other) - 1)
    i = 0
    while i <= bound:
        if _block(parent_of, first[i]) != _block(parent_of, other[i]):
            return i - 1
        if first[i] != other[i]:
            return i
        i += 1
    return bound


def resolve_common(paths: list[Path], parent_of: dict[int, BlockRef]) -> int:
    """Index into paths[0] of the deepest safe insertion point, or NO_COMMON."""
    first = paths[0]
    bound = len(first) - 1
    for other in paths[1:]:
        bound = find_common(first, other, bound, parent_of)
        if bound < 0:
            return NO_COMMON
    return bound
