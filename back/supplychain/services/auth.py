import uuid
from datetime import datetime, timezone

import structlog

from supplychain.core.exceptions import (
    InvalidCredentialsException,
    MissingFieldsException,
    UserAlreadyExistsException,
    UserNotFoundException,
)
from supplychain.core.security import SecurityManager
from supplychain.core.settings import settings
from supplychain.repo.documents import DocumentStore
from supplychain.schemas.request import LoginRequest, RegisterRequest, UserOut

logger = structlog.get_logger(__name__)

ADMINS = "admins"
USERS = "users"


class AuthService:
    """
    Регистрация и логин.
    Админы и обычные пользователи лежат в разных коллекциях,
    админом становится тот, кто при регистрации передал ADMIN_KEY.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def register_user(self, payload: RegisterRequest) -> UserOut:
        is_valid, msg = SecurityManager.validate_password_strength(payload.password)
        if not is_valid:
            raise MissingFieldsException(msg)

        role = "admin" if payload.key and payload.key == settings.ADMIN_KEY else "user"
        collection = ADMINS if role == "admin" else USERS

        existing = await self.store.query(collection, [("email", "==", payload.email)], limit=1)
        if existing:
            raise UserAlreadyExistsException(role)

        user_id = uuid.uuid4().hex
        await self.store.put(collection, user_id, {
            "email": payload.email,
            "name": payload.name,
            "password": SecurityManager.get_password_hash(payload.password),
            "role": role,
            "created_at": datetime.now(timezone.utc).isoformat(),
        })

        logger.info("user.registered", user_id=user_id, email=payload.email, role=role)
        return UserOut(id=user_id, email=payload.email, name=payload.name, role=role)

    async def login_user(self, payload: LoginRequest) -> str:
        # сначала ищем среди админов, потом среди пользователей
        for collection, role in ((ADMINS, "admin"), (USERS, "user")):
            found = await self.store.query(collection, [("email", "==", payload.email)], limit=1)
            if found:
                user = found[0]
                break
        else:
            raise UserNotFoundException()

        if not SecurityManager.verify_password(payload.password, user["password"]):
            logger.warning("auth.invalid_password", email=payload.email)
            raise InvalidCredentialsException()

        token = SecurityManager.create_access_token(user["id"], email=user["email"], role=role)
        logger.info("auth.logged_in", user_id=user["id"], role=role)
        return token
