from typing import Iterator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .exceptions import InvalidToken, Unauthenticated
from .security import PasswordHasher, TokenSigner
from .storage import ParentLocks


def get_session(request: Request) -> Iterator[Session]:
    with request.app.state.database.session() as session:
        yield session


def get_locks(request: Request) -> ParentLocks:
    return request.app.state.locks


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_signer(request: Request) -> TokenSigner:
    return request.app.state.signer


def get_current_user(
    authorization: Optional[str] = Header(None),
    signer: TokenSigner = Depends(get_signer),
) -> str:
    """Return the acting user's id from a verified bearer token.

    Only identity is established here; every service re-checks ownership.
    """
    if not authorization:
        raise Unauthenticated("Missing token")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated("Invalid token")
    try:
        claims = signer.verify(token)
    except InvalidToken:
        raise Unauthenticated("Invalid token")
    user_id = claims.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise Unauthenticated("Invalid token")
    return user_id
