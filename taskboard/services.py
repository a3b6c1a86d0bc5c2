"""Use cases behind the routes: authorize, order, persist, commit."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .authorization import ObjectRef, card_list_id, is_authorized, list_board_id
from .db import Board, Card, ListModel, Organization, User
from .exceptions import Conflict, DuplicateEmail, InvalidCredentials, NotFoundOrForbidden, Unauthenticated
from .identity import IdentityStore
from .logging import get_logger
from .ordering import OrderingEngine
from .security import PasswordHasher, TokenSigner
from .storage import CARDS, LISTS, HierarchyStore, ParentLocks

logger = get_logger(__name__)


def _found(row, entity: str):
    # Deleted between the ownership check and the read
    if row is None:
        raise NotFoundOrForbidden(entity)
    return row


class AuthService:
    def __init__(self, session: Session, hasher: PasswordHasher, signer: TokenSigner) -> None:
        self.session = session
        self.identity = IdentityStore(session)
        self.hasher = hasher
        self.signer = signer

    def register(self, email: str, password: str, name: str) -> User:
        if self.identity.get_by_email(email) is not None:
            raise DuplicateEmail()
        try:
            user = self.identity.create_user(email, self.hasher.hash(password), name)
            self.session.commit()
        except IntegrityError:
            # Lost a race with another registration for the same address
            self.session.rollback()
            raise DuplicateEmail()
        logger.info("Registered user %s", user.id)
        return user

    def login(self, email: str, password: str) -> Tuple[str, User]:
        user = self.identity.get_by_email(email)
        if user is None or not self.hasher.verify(password, user.password_hash):
            logger.warning("Failed login attempt")
            raise InvalidCredentials()
        token = self.signer.sign({"sub": user.id})
        return token, user

    def current_user(self, user_id: str) -> User:
        user = self.identity.get_by_id(user_id)
        if user is None:
            raise Unauthenticated()
        return user


class BoardService:
    """Board, list and card operations for one acting user."""

    def __init__(self, session: Session, locks: ParentLocks, actor_id: str) -> None:
        self.session = session
        self.locks = locks
        self.actor_id = actor_id
        self.store = HierarchyStore(session)
        self.ordering = OrderingEngine(self.store)

    def _authorize(self, ref: ObjectRef, entity: str) -> None:
        if not is_authorized(self.session, self.actor_id, ref):
            raise NotFoundOrForbidden(entity)

    # === Boards ===

    def list_boards(self) -> List[Board]:
        return self.store.list_boards_for_owner(self.actor_id)

    def create_board(self, name: str, organization_id: Optional[str] = None) -> Board:
        if organization_id is not None:
            self._authorize(ObjectRef.organization(organization_id), "Organization")
            board = self.store.create_board(name, organization_id, self.actor_id)
            self.session.commit()
        else:
            with self.locks.hold(("organization", self.actor_id)):
                organization = self._default_organization()
                board = self.store.create_board(name, organization.id, self.actor_id)
                self.session.commit()
        logger.info("Created board %s", board.id)
        return board

    def _default_organization(self) -> Organization:
        organization = self.store.get_organization_for_owner(self.actor_id)
        if organization is not None:
            return organization
        owner = IdentityStore(self.session).get_by_id(self.actor_id)
        if owner is None:
            raise Unauthenticated()
        try:
            organization = self.store.create_organization(f"{owner.name}'s Organization", owner.id)
        except IntegrityError:
            # Another process created it since the lookup
            self.session.rollback()
            return _found(self.store.get_organization_for_owner(self.actor_id), "Organization")
        logger.info("Created default organization %s for user %s", organization.id, owner.id)
        return organization

    def get_board(self, board_id: str) -> Board:
        self._authorize(ObjectRef.board(board_id), "Board")
        return _found(self.store.get_board(board_id, with_children=True), "Board")

    def rename_board(self, board_id: str, name: str) -> Board:
        self._authorize(ObjectRef.board(board_id), "Board")
        board = self.store.rename_board(_found(self.store.get_board(board_id), "Board"), name)
        self.session.commit()
        return board

    def delete_board(self, board_id: str) -> None:
        self._authorize(ObjectRef.board(board_id), "Board")
        with self.locks.hold((LISTS.name, board_id)):
            self.store.delete_board(_found(self.store.get_board(board_id), "Board"))
            self.session.commit()
        logger.info("Deleted board %s", board_id)

    # === Lists ===

    def create_list(self, board_id: str, name: str) -> ListModel:
        self._authorize(ObjectRef.board(board_id), "Board")
        with self.locks.hold((LISTS.name, board_id)):
            self.store.lock_parent(LISTS, board_id)
            _found(self.store.get_board(board_id), "Board")
            position = self.ordering.append(LISTS, board_id)
            board_list = self.store.create_list(name, board_id, position)
            self.session.commit()
        return board_list

    def get_list(self, list_id: str) -> ListModel:
        self._authorize(ObjectRef.list(list_id), "List")
        return _found(self.store.get_list(list_id, with_cards=True), "List")

    def rename_list(self, list_id: str, name: str) -> ListModel:
        self._authorize(ObjectRef.list(list_id), "List")
        board_list = self.store.rename_list(_found(self.store.get_list(list_id, with_cards=True), "List"), name)
        self.session.commit()
        return board_list

    def delete_list(self, list_id: str) -> None:
        self._authorize(ObjectRef.list(list_id), "List")
        board_list = _found(self.store.get_list(list_id), "List")
        with self.locks.hold((LISTS.name, board_list.board_id), (CARDS.name, list_id)):
            self.store.delete_list(board_list)
            self.session.commit()

    def move_list(
        self,
        list_id: str,
        index: Optional[int] = None,
        before_id: Optional[str] = None,
        after_id: Optional[str] = None,
    ) -> ListModel:
        self._authorize(ObjectRef.list(list_id), "List")
        board_id = _found(list_board_id(self.session, list_id), "List")
        with self.locks.hold((LISTS.name, board_id)):
            self.store.lock_parent(LISTS, board_id)
            board_list = _found(self.store.get_list(list_id), "List")
            if board_list.board_id != board_id:
                raise NotFoundOrForbidden("List")
            siblings = self.store.siblings(LISTS, board_id)
            target = self.ordering.resolve_index(siblings, board_list, index, before_id, after_id)
            if self.ordering.reorder(board_list, target):
                self.session.commit()
        return board_list

    # === Cards ===

    def create_card(
        self,
        list_id: str,
        title: str,
        description: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> Card:
        self._authorize(ObjectRef.list(list_id), "List")
        with self.locks.hold((CARDS.name, list_id)):
            self.store.lock_parent(CARDS, list_id)
            _found(self.store.get_list(list_id), "List")
            position = self.ordering.append(CARDS, list_id)
            card = self.store.create_card(title, list_id, position, description, due_date)
            self.session.commit()
        return card

    def get_card(self, card_id: str) -> Card:
        self._authorize(ObjectRef.card(card_id), "Card")
        return _found(self.store.get_card(card_id), "Card")

    def update_card(self, card_id: str, changes: Dict[str, Any]) -> Card:
        self._authorize(ObjectRef.card(card_id), "Card")
        card = self.store.update_card(_found(self.store.get_card(card_id), "Card"), **changes)
        self.session.commit()
        return card

    def delete_card(self, card_id: str) -> None:
        self._authorize(ObjectRef.card(card_id), "Card")
        card = _found(self.store.get_card(card_id), "Card")
        with self.locks.hold((CARDS.name, card.list_id)):
            self.store.delete_card(card)
            self.session.commit()

    def move_card(
        self,
        card_id: str,
        list_id: Optional[str] = None,
        index: Optional[int] = None,
        before_id: Optional[str] = None,
        after_id: Optional[str] = None,
    ) -> Card:
        self._authorize(ObjectRef.card(card_id), "Card")
        source_id = _found(card_list_id(self.session, card_id), "Card")
        destination_id = list_id if list_id is not None else source_id
        if destination_id != source_id:
            self._authorize(ObjectRef.list(destination_id), "List")

        with self.locks.hold((CARDS.name, source_id), (CARDS.name, destination_id)):
            for parent_id in sorted({source_id, destination_id}):
                self.store.lock_parent(CARDS, parent_id)
            card = _found(self.store.get_card(card_id), "Card")
            if card.list_id != source_id:
                raise Conflict("Card was moved by another request")
            siblings = self.store.siblings(CARDS, destination_id)
            target = self.ordering.resolve_index(siblings, card, index, before_id, after_id)
            if self.ordering.move(card, destination_id, target):
                self.session.commit()
        return card
