"""
Password hashing with bcrypt via passlib.
"""

from passlib.context import CryptContext


class PasswordHasher:
    """Hashes and checks account passwords."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )
        self._dummy_hash: str | None = None

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Check a password against a stored hash.

        Malformed hashes count as a mismatch rather than an error.
        """
        try:
            return self._context.verify(plain_password, hashed_password)
        except ValueError:
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """True when the hash was produced with outdated parameters."""
        return self._context.needs_update(hashed_password)

    def burn(self, plain_password: str) -> None:
        """
        Spend the same time a real verification would.

        Called on login attempts for unknown accounts so response timing
        does not reveal which emails are registered.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self._context.hash("minispace-timing-equalizer")
        self._context.verify(plain_password, self._dummy_hash)


password_hasher = PasswordHasher()
