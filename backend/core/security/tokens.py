"""
JWT access and refresh tokens.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

ACCESS = "access"
REFRESH = "refresh"


@dataclass
class TokenPayload:
    """Decoded token claims."""

    sub: str  # user id
    exp: datetime
    iat: datetime
    type: str
    username: str | None = None


class TokenService:
    """Issues and validates the signed tokens used for dashboard sessions."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 60,
        refresh_token_expire_days: int = 7,
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._access_lifetime = timedelta(minutes=access_token_expire_minutes)
        self._refresh_lifetime = timedelta(days=refresh_token_expire_days)

    @property
    def access_token_ttl(self) -> int:
        """Access token lifetime in seconds."""
        return int(self._access_lifetime.total_seconds())

    @property
    def refresh_token_ttl(self) -> int:
        """Refresh token lifetime in seconds."""
        return int(self._refresh_lifetime.total_seconds())

    def _encode(self, token_type: str, user_id: str, lifetime: timedelta, **claims) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": user_id,
            # Sub-second precision so tokens issued right after a password
            # change are not mistaken for older ones
            "iat": now.timestamp(),
            "exp": now + lifetime,
            "type": token_type,
        }
        payload.update({k: v for k, v in claims.items() if v is not None})
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def create_access_token(self, user_id: str, username: str | None = None) -> str:
        return self._encode(ACCESS, user_id, self._access_lifetime, username=username)

    def create_refresh_token(self, user_id: str) -> str:
        return self._encode(REFRESH, user_id, self._refresh_lifetime)

    def create_token_pair(self, user_id: str, username: str | None = None) -> tuple[str, str]:
        """Returns (access_token, refresh_token)."""
        return (
            self.create_access_token(user_id, username),
            self.create_refresh_token(user_id),
        )

    def decode_token(self, token: str) -> TokenPayload | None:
        """
        Decode and validate a token's signature, expiry and required claims.

        Returns:
            TokenPayload if valid, None if invalid or expired
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError:
            return None

        if any(field not in payload for field in ("sub", "exp", "type")):
            return None

        return TokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
            iat=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
            type=payload["type"],
            username=payload.get("username"),
        )

    def _verify(self, token: str, token_type: str) -> TokenPayload | None:
        payload = self.decode_token(token)
        if payload and payload.type == token_type:
            return payload
        return None

    def verify_access_token(self, token: str) -> TokenPayload | None:
        return self._verify(token, ACCESS)

    def verify_refresh_token(self, token: str) -> TokenPayload | None:
        return self._verify(token, REFRESH)
