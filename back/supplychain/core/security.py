from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext

from supplychain.core.settings import settings

logger = structlog.get_logger(__name__)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class SecurityManager:
    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def create_access_token(
        subject: str,
        email: Optional[str] = None,
        role: str = "user",
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Access JWT для дашборда (HS256).
        В payload кладём id, email и роль, чтобы гарды не ходили в базу.
        """
        now = SecurityManager._now()
        expire = now + (expires_delta or timedelta(
            minutes=(settings.ACCESS_TOKEN_EXPIRE_MINUTES or 120)
        ))

        to_encode: dict[str, Any] = {
            "sub": subject,
            "email": email,
            "role": role,
            "type": "access",
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int(expire.timestamp()),
        }

        return jwt.encode(
            claims=to_encode,
            key=settings.SECRET_KEY,
            algorithm=(settings.ALGORITHM or "HS256"),
        )

    @staticmethod
    def verify_token(token: str) -> Optional[dict[str, Any]]:
        """
        Проверяет подпись JWT, exp, nbf.
        Возвращает payload (dict) или None.
        """
        options = {
            "verify_aud": False,
            "leeway": 30,  # рассинхрон часов
        }

        try:
            payload = jwt.decode(
                token=token,
                key=settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM or "HS256"],
                options=options,
            )
        except JWTError as e:
            logger.warning("JWT verification failed", error=str(e))
            return None

        if payload.get("type") != "access":
            logger.warning("JWT type mismatch", actual=payload.get("type"))
            return None

        return payload

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def validate_password_strength(password: str) -> tuple[bool, str]:
        if len(password) < settings.PASSWORD_MIN_LENGTH:
            return False, f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long"
        return True, "Password is valid"
