import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from secure_files.core.config import Settings
from secure_files.core.errors import AuthError, ConflictError, ValidationError
from secure_files.core.security import TokenService, get_password_hash, verify_password
from secure_files.models.user import User

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    user: User
    access_token: str
    expires_at: datetime
    expires_in: int


class UserDirectory:
    """Account storage: registration, credential checks and token issuing."""

    def __init__(self, db: Session, settings: Settings, tokens: TokenService):
        self.db = db
        self.min_password_length = settings.MIN_PASSWORD_LENGTH
        self.tokens = tokens

    def register(self, username: Optional[str], email: Optional[str], password: Optional[str]) -> User:
        username = (username or "").strip()
        email = (email or "").strip().lower()
        password = password or ""

        if not username or not email or not password:
            raise ValidationError("username, email and password are required")
        if len(password) < self.min_password_length:
            raise ValidationError(
                f"Password must be at least {self.min_password_length} characters"
            )

        if self.db.query(User).filter(User.email == email).first():
            raise ConflictError("Email already registered")

        user = User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against another registration with the same email
            self.db.rollback()
            raise ConflictError("Email already registered")
        self.db.refresh(user)

        logger.info("Registered user id=%s", user.id)
        return user

    def login(self, email: Optional[str], password: Optional[str]) -> LoginResult:
        email = (email or "").strip().lower()
        user = self.db.query(User).filter(User.email == email).first() if email else None

        if not user or not verify_password(password or "", user.password_hash):
            logger.warning("Failed login attempt")
            raise AuthError("Invalid email or password")

        token, expires_at = self.tokens.issue(user.id)
        expires_in = int((expires_at - datetime.now(expires_at.tzinfo)).total_seconds())
        logger.info("User id=%s logged in", user.id)
        return LoginResult(
            user=user,
            access_token=token,
            expires_at=expires_at,
            expires_in=max(expires_in, 0),
        )

    def get(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()
