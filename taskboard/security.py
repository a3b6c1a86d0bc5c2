"""
Password hashing and bearer tokens.

Both are consumed through small protocols so the gateway and the services
can run against fakes in tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Protocol

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import Settings
from .exceptions import InvalidToken


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password: str, digest: str) -> bool: ...


class TokenSigner(Protocol):
    def sign(self, claims: Dict[str, Any]) -> str: ...

    def verify(self, token: str) -> Dict[str, Any]: ...


class BcryptPasswordHasher:
    def __init__(self, rounds: int = 12):
        self.context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__default_rounds=rounds,
            bcrypt__min_rounds=min(rounds, 10),
            bcrypt__max_rounds=16,
        )

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, password: str, digest: str) -> bool:
        try:
            return self.context.verify(password, digest)
        except (ValueError, TypeError):
            # Unrecognised or corrupt digest
            return False


class JWTTokenSigner:
    """HS256 access tokens with a fixed validity window."""

    token_type = "access"

    def __init__(self, secret: str, algorithm: str = "HS256", expires_in: timedelta = timedelta(days=7)):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_in = expires_in

    def sign(self, claims: Dict[str, Any], now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        to_encode = dict(claims)
        to_encode.update(
            {
                "iat": issued_at,
                "exp": issued_at + self.expires_in,
                "type": self.token_type,
            }
        )
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            # jose enforces "exp" when the claim is present; require it too.
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require_exp": True},
            )
        except JWTError as e:
            raise InvalidToken(str(e)) from e

        if payload.get("type") != self.token_type:
            raise InvalidToken("Invalid token type")
        return payload


def password_hasher_from_settings(settings: Settings) -> BcryptPasswordHasher:
    return BcryptPasswordHasher(rounds=settings.bcrypt_rounds)


def token_signer_from_settings(settings: Settings) -> JWTTokenSigner:
    return JWTTokenSigner(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_in=timedelta(minutes=settings.jwt_expires_in_minutes),
    )
