"""User accounts and password hashing."""

from __future__ import annotations

import bcrypt
import structlog

from .errors import AuthenticationError, EmailAlreadyRegisteredError, UserNotFoundError
from .models import User, UserRole, _utc_now
from .storage import Repository

logger = structlog.get_logger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


class UserStore:
    """Manages user accounts keyed by user ID."""

    def __init__(self, repository: Repository[User]):
        self.repository = repository

    def get(self, user_id: str) -> User:
        """
        Get a user by ID.

        Raises:
            UserNotFoundError: If user doesn't exist.
        """
        user = self.repository.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def find_by_email(self, email: str) -> User | None:
        email = email.lower()
        for user in self.repository.values():
            if user.email == email:
                return user
        return None

    def register(
        self,
        email: str,
        password: str,
        name: str,
        role: UserRole = UserRole.CUSTOMER,
    ) -> User:
        """
        Create an account with a bcrypt-hashed password.

        Raises:
            EmailAlreadyRegisteredError: If the email is taken.
        """
        if self.find_by_email(email) is not None:
            raise EmailAlreadyRegisteredError(email)

        user = User.create(
            email=email, name=name, password_hash=hash_password(password), role=role
        )
        self.repository.put(user.id, user)
        logger.info("user_registered", user_id=user.id)
        return user

    def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials.

        Raises:
            AuthenticationError: If the email is unknown or the password is wrong.
        """
        user = self.find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        return user

    def update_profile(
        self,
        user_id: str,
        name: str | None = None,
        phone: str | None = None,
        marketing_emails: bool | None = None,
        marketing_sms: bool | None = None,
    ) -> User:
        """Update the given profile fields. An empty phone clears it."""
        user = self.get(user_id)
        if name is not None:
            user.name = name
        if phone is not None:
            user.phone = phone or None
        if marketing_emails is not None:
            user.marketing_emails = marketing_emails
        if marketing_sms is not None:
            user.marketing_sms = marketing_sms
        user.updated_at = _utc_now()
        self.repository.put(user.id, user)
        return user

    def change_password(self, user_id: str, current_password: str, new_password: str) -> User:
        """
        Replace a user's password after checking the current one.

        Raises:
            AuthenticationError: If ``current_password`` is wrong.
        """
        user = self.get(user_id)
        if not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")
        user.password_hash = hash_password(new_password)
        user.updated_at = _utc_now()
        self.repository.put(user.id, user)
        logger.info("password_changed", user_id=user.id)
        return user

    def set_role(self, user_id: str, role: UserRole) -> User:
        user = self.get(user_id)
        user.role = role
        user.updated_at = _utc_now()
        self.repository.put(user.id, user)
        return user
