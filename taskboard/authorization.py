"""Ownership checks that walk card -> list -> board -> owner.

``is_authorized`` answers yes or no and never hands back the rows it looked
at. Callers turn ``False`` into a not-found error so that objects owned by
other users look exactly like objects that do not exist.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import Board, Card, ListModel, Organization


class ObjectKind(str, Enum):
    BOARD = "board"
    LIST = "list"
    CARD = "card"
    ORGANIZATION = "organization"


@dataclass(frozen=True)
class ObjectRef:
    kind: ObjectKind
    id: str

    @classmethod
    def board(cls, board_id: str) -> "ObjectRef":
        return cls(ObjectKind.BOARD, board_id)

    @classmethod
    def list(cls, list_id: str) -> "ObjectRef":
        return cls(ObjectKind.LIST, list_id)

    @classmethod
    def card(cls, card_id: str) -> "ObjectRef":
        return cls(ObjectKind.CARD, card_id)

    @classmethod
    def organization(cls, organization_id: str) -> "ObjectRef":
        return cls(ObjectKind.ORGANIZATION, organization_id)


def _scalar(session: Session, statement) -> Optional[str]:
    return session.execute(statement).scalar_one_or_none()


def card_list_id(session: Session, card_id: str) -> Optional[str]:
    return _scalar(session, select(Card.list_id).where(Card.id == card_id))


def list_board_id(session: Session, list_id: str) -> Optional[str]:
    return _scalar(session, select(ListModel.board_id).where(ListModel.id == list_id))


def board_owner_id(session: Session, board_id: str) -> Optional[str]:
    return _scalar(session, select(Board.owner_id).where(Board.id == board_id))


def organization_owner_id(session: Session, organization_id: str) -> Optional[str]:
    return _scalar(session, select(Organization.owner_id).where(Organization.id == organization_id))


def owner_of(session: Session, ref: ObjectRef) -> Optional[str]:
    """Follow parent links up to the recorded owner; ``None`` if any link is missing."""
    if ref.kind is ObjectKind.ORGANIZATION:
        return organization_owner_id(session, ref.id)

    board_id: Optional[str] = None
    if ref.kind is ObjectKind.BOARD:
        board_id = ref.id
    elif ref.kind is ObjectKind.LIST:
        board_id = list_board_id(session, ref.id)
    elif ref.kind is ObjectKind.CARD:
        list_id = card_list_id(session, ref.id)
        board_id = list_board_id(session, list_id) if list_id is not None else None

    if board_id is None:
        return None
    return board_owner_id(session, board_id)


def is_authorized(session: Session, actor_id: Optional[str], ref: ObjectRef) -> bool:
    if not actor_id or not ref.id:
        return False
    owner_id = owner_of(session, ref)
    return owner_id is not None and owner_id == actor_id
