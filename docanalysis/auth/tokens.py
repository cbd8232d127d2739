from datetime import datetime, timedelta, timezone

import jwt

from docanalysis.auth.identity import CallerIdentity, Role
from docanalysis.exceptions import TokenErrorKind, TokenVerificationError


class TokenIssuer:
    """Signs and verifies caller-scoped bearer tokens."""

    def __init__(self, *, secret: str, algorithm: str = "HS256", expire_hours: int = 12) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._expires_in = timedelta(hours=expire_hours)

    def issue(self, caller: CallerIdentity) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "userId": caller.user_id,
            "email": caller.email,
            "name": caller.name,
            "role": caller.role.value,
            "iat": now,
            "exp": now + self._expires_in,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str | None) -> CallerIdentity:
        """Decode a token into a caller identity.

        Raises:
            TokenVerificationError: with kind MISSING, EXPIRED or INVALID.
        """
        if not token:
            raise TokenVerificationError(TokenErrorKind.MISSING)
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "userId", "role"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenVerificationError(TokenErrorKind.EXPIRED) from exc
        except jwt.PyJWTError as exc:
            raise TokenVerificationError(TokenErrorKind.INVALID) from exc

        try:
            role = Role(claims["role"])
        except ValueError as exc:
            raise TokenVerificationError(TokenErrorKind.INVALID) from exc
        return CallerIdentity(
            user_id=str(claims["userId"]),
            role=role,
            email=claims.get("email", ""),
            name=claims.get("name", ""),
        )


def bearer_token(authorization_header: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization_header:
        return None
    scheme, _, token = authorization_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
