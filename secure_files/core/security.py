import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from secure_files.core.config import Settings
from secure_files.core.errors import AuthError

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against its stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash password (bcrypt, salted)."""
    return pwd_context.hash(password)


class TokenService:
    """Issues and verifies the signed bearer tokens.

    One instance lives on the application and is shared by every route
    that needs the caller's identity.
    """

    def __init__(self, settings: Settings):
        self.secret_key = settings.SECRET_KEY
        self.algorithm = settings.ALGORITHM
        self.expire_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES

    def issue(self, user_id: int, expires_delta: Optional[timedelta] = None) -> Tuple[str, datetime]:
        """Create a JWT for ``user_id``.

        - `sub` is a string for portability
        - `exp` is a numeric UNIX timestamp
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.expire_minutes)
        expire_dt = datetime.now(timezone.utc) + expires_delta
        to_encode = {"sub": str(user_id), "exp": int(expire_dt.timestamp())}
        token = jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)
        return token, expire_dt

    def verify(self, token: Optional[str]) -> int:
        """Return the user id embedded in ``token`` or raise AuthError."""
        if not token:
            raise AuthError("Missing bearer token")
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": True},
            )
        except ExpiredSignatureError:
            logger.info("Rejected expired token")
            raise AuthError("Token expired")
        except JWTError:
            logger.info("Rejected invalid token")
            raise AuthError("Invalid token")

        try:
            return int(payload.get("sub"))
        except (TypeError, ValueError):
            raise AuthError("Invalid token")
