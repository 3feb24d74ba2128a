"""
Business logic for user accounts.

Signup stores the user with a PBKDF2 password hash; login checks the
password and returns the public user.  Unknown emails and wrong
passwords produce the same ``InvalidCredentials`` error so the API does
not reveal which emails are registered.
"""

import logging
import sqlite3

from ..core.db import Database, is_unique_violation
from ..core.errors import EmailAlreadyInUse, InternalError, InvalidCredentials, UserNotFound
from ..core.security import hash_password_async, verify_password_async
from ..schemas.user import LoginRequest, SignupRequest, UserRead

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, email, name, role, created_at"


class UserService:
    """Service for registering and authenticating users."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def signup(self, data: SignupRequest) -> UserRead:
        """Create a new user.

        Raises ``EmailAlreadyInUse`` when the email's unique constraint
        rejects the insert.
        """
        logger.info("Registering user %s", data.email)
        hashed = await hash_password_async(data.password)
        try:
            with self.db.transaction() as cursor:
                cursor.execute(
                    "INSERT INTO users (email, name, password, role) VALUES (?, ?, ?, ?)",
                    (data.email, data.name, hashed, data.role.value),
                )
                user_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            if not is_unique_violation(exc):
                logger.error("Registration of %s failed: %s", data.email, exc)
                raise InternalError("Could not store user")
            logger.warning("Registration failed: email %s already in use", data.email)
            raise EmailAlreadyInUse()
        user = self.get_profile(user_id)
        logger.info("User registered successfully: %s (id=%s, role=%s)", user.email, user.id, user.role.value)
        return user

    async def authenticate(self, data: LoginRequest) -> UserRead:
        row = self.db.fetch_one(
            f"SELECT {USER_COLUMNS}, password FROM users WHERE email = ?",
            (data.email,),
        )
        if not row:
            logger.warning("Login failed: user not found for email %s", data.email)
            raise InvalidCredentials()
        if not await verify_password_async(data.password, row["password"]):
            logger.warning("Login failed: invalid password for email %s", data.email)
            raise InvalidCredentials()
        logger.info("User logged in successfully: %s", row["email"])
        return UserRead.model_validate(dict(row))

    def get_profile(self, user_id: int) -> UserRead:
        row = self.db.fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
        if not row:
            raise UserNotFound()
        return UserRead.model_validate(dict(row))
