"""Sibling ordering with fractional positions.

Every list (within a board) and every card (within a list) carries a float
``position``. Appending puts a child at ``max + 1``; dropping it between two
siblings puts it at their midpoint. When repeated inserts into the same gap
run out of float precision the sibling set is renumbered ``0, 1, 2, ...`` and
the midpoint is taken again.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

from .exceptions import ValidationError
from .logging import get_logger
from .storage import Child, HierarchyStore, SiblingKind, kind_of

logger = get_logger(__name__)


def append_position(max_position: Optional[float]) -> float:
    """Position that sorts after every existing sibling."""
    if max_position is None:
        return 0.0
    return float(max_position) + 1


def position_between(left: Optional[float], right: Optional[float]) -> Optional[float]:
    """Return a position strictly between ``left`` and ``right``.

    ``None`` on either side means unbounded. Returns ``None`` when no float
    strictly between the two exists (equal neighbours or exhausted precision).
    """
    if left is None and right is None:
        return 0.0
    if left is None:
        candidate = right - 1
    elif right is None:
        candidate = left + 1
    else:
        candidate = (left + right) / 2

    if left is not None and not candidate > left:
        return None
    if right is not None and not candidate < right:
        return None
    return candidate


def renumber(siblings: Sequence[Child]) -> None:
    for index, sibling in enumerate(siblings):
        sibling.position = float(index)


class OrderingEngine:
    """Computes and assigns positions; persistence goes through the store.

    Callers hold the parent's lock and own the transaction.
    """

    def __init__(self, store: HierarchyStore) -> None:
        self.store = store

    def append(self, kind: SiblingKind, parent_id: str) -> float:
        return append_position(self.store.max_position(kind, parent_id))

    @staticmethod
    def resolve_index(
        siblings: Sequence[Child],
        child: Optional[Child] = None,
        index: Optional[int] = None,
        before_id: Optional[str] = None,
        after_id: Optional[str] = None,
    ) -> int:
        """Translate a drop point into the child's final index among ``siblings``.

        ``siblings`` is the destination's current children, which may include
        ``child`` itself. No drop point means the end.
        """
        if sum(x is not None for x in (index, before_id, after_id)) > 1:
            raise ValidationError("Only one of index, beforeId or afterId may be given")

        anchor_id = before_id if before_id is not None else after_id
        if child is not None and anchor_id == child.id:
            # Dropped onto itself
            return [s.id for s in siblings].index(child.id)

        others = [s for s in siblings if child is None or s.id != child.id]
        if anchor_id is not None:
            ids = [s.id for s in others]
            if anchor_id not in ids:
                raise ValidationError("Drop target is not a sibling in the destination")
            anchor = ids.index(anchor_id)
            return anchor if before_id is not None else anchor + 1

        if index is None:
            return len(others)
        if index < 0:
            raise ValidationError("index must not be negative")
        return min(index, len(others))

    def reorder(self, child: Child, index: int) -> bool:
        """Move ``child`` to ``index`` among its current siblings.

        Returns ``False`` when the child already sits there; nothing is written.
        """
        kind = kind_of(child)
        siblings = self.store.siblings(kind, kind.parent_id_of(child))
        current = [s.id for s in siblings].index(child.id)
        target = min(max(index, 0), len(siblings) - 1)
        if current == target:
            return False

        others = [s for s in siblings if s.id != child.id]
        self._place(kind, child, others, target)
        return True

    def move(self, child: Child, parent_id: str, index: int) -> bool:
        """Re-parent ``child`` under ``parent_id`` at ``index``.

        The source sibling set is left as is; removing one child cannot
        create a tie there.
        """
        kind = kind_of(child)
        source_id = kind.parent_id_of(child)
        if source_id == parent_id:
            return self.reorder(child, index)

        destination = self.store.siblings(kind, parent_id)
        target = min(max(index, 0), len(destination))
        kind.set_parent(child, parent_id)
        self._place(kind, child, destination, target)
        logger.info(
            "Moved %s %s from %s to %s at index %d",
            kind.name, child.id, source_id, parent_id, target,
        )
        return True

    def _place(self, kind: SiblingKind, child: Child, others: List[Child], target: int) -> None:
        position = self._between(others, target)
        if position is None:
            logger.info(
                "Renumbering %d %ss under parent %s",
                len(others), kind.name, kind.parent_id_of(child),
            )
            renumber(others)
            position = self._between(others, target)
        child.position = position

    @staticmethod
    def _between(others: Sequence[Child], target: int) -> Optional[float]:
        left = others[target - 1].position if target > 0 else None
        right = others[target].position if target < len(others) else None
        return position_between(left, right)
