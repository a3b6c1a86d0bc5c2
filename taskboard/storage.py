from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple, Type, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from .db import Board, Card, ListModel, Organization

Child = Union[ListModel, Card]


@dataclass(frozen=True)
class SiblingKind:
    """How one level of the hierarchy is ordered: child model, parent model and the link."""

    name: str
    model: Type[Child]
    parent_model: Type[Union[Board, ListModel]]
    parent_attr: str

    def parent_id_of(self, child: Child) -> str:
        return getattr(child, self.parent_attr)

    def set_parent(self, child: Child, parent_id: str) -> None:
        setattr(child, self.parent_attr, parent_id)

    @property
    def parent_column(self):
        return getattr(self.model, self.parent_attr)


LISTS = SiblingKind("list", ListModel, Board, "board_id")
CARDS = SiblingKind("card", Card, ListModel, "list_id")


def kind_of(child: Child) -> SiblingKind:
    return LISTS if isinstance(child, ListModel) else CARDS


def sort_key(child: Child) -> Tuple[float, datetime, str]:
    return (child.position, child.created_at, child.id)


class ParentLocks:
    """One lock per sibling set, so read-then-write position updates serialize per parent.

    Row locks taken by ``HierarchyStore.lock_parent`` cover other processes on
    databases that support ``SELECT ... FOR UPDATE``; this covers threads of
    this process, including on SQLite.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, str], threading.Lock] = {}
        # Holders plus waiters per key; the entry goes when this reaches zero.
        self._users: Dict[Tuple[str, str], int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: Tuple[str, str]) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: Tuple[str, str]) -> None:
        with self._guard:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: Tuple[str, str]) -> Iterator[None]:
        # Sorted and de-duplicated so two cross-parent moves cannot deadlock.
        ordered = sorted(set(keys))
        checked_out: List[Tuple[str, str]] = []
        acquired: List[threading.Lock] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                checked_out.append(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in checked_out:
                self._checkin(key)


class HierarchyStore:
    """Persistence for organizations, boards, lists and cards.

    No authorization happens here; callers check ownership first.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # === Organization operations ===
    def get_organization_for_owner(self, owner_id: str) -> Optional[Organization]:
        return self.session.execute(
            select(Organization)
            .where(Organization.owner_id == owner_id)
            .order_by(Organization.created_at, Organization.id)
            .limit(1)
        ).scalar_one_or_none()

    def get_organization(self, organization_id: str) -> Optional[Organization]:
        return self.session.get(Organization, organization_id)

    def create_organization(self, name: str, owner_id: str) -> Organization:
        organization = Organization(name=name, owner_id=owner_id)
        self.session.add(organization)
        self.session.flush()
        return organization

    # === Board operations ===
    def create_board(self, name: str, organization_id: str, owner_id: str) -> Board:
        board = Board(name=name, organization_id=organization_id, owner_id=owner_id)
        self.session.add(board)
        self.session.flush()
        return board

    def get_board(self, board_id: str, with_children: bool = False) -> Optional[Board]:
        options = [selectinload(Board.lists).selectinload(ListModel.cards)] if with_children else []
        return self.session.get(Board, board_id, options=options)

    def list_boards_for_owner(self, owner_id: str) -> List[Board]:
        return list(
            self.session.execute(
                select(Board)
                .where(Board.owner_id == owner_id)
                .options(selectinload(Board.lists).selectinload(ListModel.cards))
                .order_by(Board.created_at.desc(), Board.id)
            ).scalars()
        )

    def rename_board(self, board: Board, name: str) -> Board:
        board.name = name
        self.session.flush()
        return board

    def delete_board(self, board: Board) -> None:
        # The ORM cascade removes lists and cards in the same flush.
        self.session.delete(board)
        self.session.flush()

    # === List operations ===
    def create_list(self, name: str, board_id: str, position: float) -> ListModel:
        board_list = ListModel(name=name, board_id=board_id, position=position)
        self.session.add(board_list)
        self.session.flush()
        return board_list

    def get_list(self, list_id: str, with_cards: bool = False) -> Optional[ListModel]:
        options = [selectinload(ListModel.cards)] if with_cards else []
        return self.session.get(ListModel, list_id, options=options)

    def rename_list(self, board_list: ListModel, name: str) -> ListModel:
        board_list.name = name
        self.session.flush()
        return board_list

    def delete_list(self, board_list: ListModel) -> None:
        self.session.delete(board_list)
        self.session.flush()

    # === Card operations ===
    def create_card(
        self,
        title: str,
        list_id: str,
        position: float,
        description: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> Card:
        card = Card(
            title=title,
            list_id=list_id,
            position=position,
            description=description,
            due_date=due_date,
        )
        self.session.add(card)
        self.session.flush()
        return card

    def get_card(self, card_id: str) -> Optional[Card]:
        return self.session.get(Card, card_id)

    def update_card(self, card: Card, **fields) -> Card:
        for field, value in fields.items():
            setattr(card, field, value)
        self.session.flush()
        return card

    def delete_card(self, card: Card) -> None:
        self.session.delete(card)
        self.session.flush()

    # === Sibling queries ===
    def siblings(self, kind: SiblingKind, parent_id: str) -> List[Child]:
        model = kind.model
        return list(
            self.session.execute(
                select(model)
                .where(kind.parent_column == parent_id)
                .order_by(model.position, model.created_at, model.id)
            ).scalars()
        )

    def max_position(self, kind: SiblingKind, parent_id: str) -> Optional[float]:
        return self.session.execute(
            select(func.max(kind.model.position)).where(kind.parent_column == parent_id)
        ).scalar_one_or_none()

    def lock_parent(self, kind: SiblingKind, parent_id: str) -> None:
        """Row-lock the parent for the rest of the transaction (ignored by SQLite)."""
        parent_model = kind.parent_model
        self.session.execute(
            select(parent_model.id).where(parent_model.id == parent_id).with_for_update()
        )
