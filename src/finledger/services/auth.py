"""Registration and login for the single local ledger owner."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from ..config import BaseConfig
from ..errors import DuplicateUsernameError
from ..infra.repositories.category import SQLModelCategoryRepository
from ..infra.repositories.user import SQLModelUserRepository, normalize_username
from ..logging_config import get_logger
from ..models.user import User

logger = get_logger("services.auth")

_hasher = PasswordHasher()


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a login or registration attempt."""

    success: bool
    user: Optional[User] = None
    error: Optional[str] = None


class AuthService:
    """Password-hashed registration and login.

    The identity handed out here (``user.id``) is what every other service is
    scoped by; it is trusted without further checks.
    """

    def __init__(
        self,
        user_repo: SQLModelUserRepository,
        category_repo: SQLModelCategoryRepository,
        config: BaseConfig,
    ):
        self.user_repo = user_repo
        self.category_repo = category_repo
        self.config = config

    def register(self, username: str, password: str) -> AuthResult:
        """Create a user together with its default categories, or neither."""

        normalized = normalize_username(username or "")
        if len(normalized) < self.config.MIN_USERNAME_LENGTH:
            return AuthResult(
                False,
                error=f"Username must be at least {self.config.MIN_USERNAME_LENGTH} characters",
            )
        if len(password or "") < self.config.MIN_PASSWORD_LENGTH:
            return AuthResult(
                False,
                error=f"Password must be at least {self.config.MIN_PASSWORD_LENGTH} characters",
            )

        try:
            user = self.user_repo.create(
                username=normalized,
                password_hash=_hasher.hash(password),
                setup=lambda session, new_user: self.category_repo.add_defaults(
                    session, new_user.id
                ),
            )
        except DuplicateUsernameError as exc:
            return AuthResult(False, error=exc.message)
        except Exception:
            logger.exception("Registration failed", extra={"username": normalized})
            return AuthResult(False, error="Registration failed. Please try again.")

        logger.info("User registered", extra={"user_id": user.id})
        return AuthResult(True, user=user)

    def login(self, username: str, password: str) -> AuthResult:
        """Verify credentials with argon2's constant-time check."""

        try:
            user = self.user_repo.get_by_username(username or "")
            if user is None:
                return AuthResult(False, error="User not found")
            try:
                _hasher.verify(user.password_hash, password or "")
            except (VerifyMismatchError, InvalidHash, VerificationError):
                return AuthResult(False, error="Invalid password")
        except Exception:
            logger.exception("Login failed")
            return AuthResult(False, error="Login failed. Please try again.")

        return AuthResult(True, user=user)
