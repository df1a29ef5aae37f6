import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from runstore import config
from runstore.core.errors import Conflict, NotFound, Unauthorized, ValidationError
from runstore.core.repository import UserRepository
from runstore.core.security import create_identity_token, decode_identity, hash_password, verify_password
from runstore.schemas import Role, TokenIdentity, UserAccount, UserPublic, UserRegister

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IdentityService:
    """Регистрация, вход, выдача и проверка токенов"""

    def __init__(self, users: UserRepository, clock: Callable[[], datetime] = utc_now):
        self.users = users
        self.clock = clock
        # check-then-insert при регистрации должен быть атомарным
        self._lock = threading.RLock()

    @staticmethod
    def public_view(user: UserAccount) -> UserPublic:
        return UserPublic(id=user.id, email=user.email, name=user.name, role=user.role)

    def issue_token(self, user: UserAccount) -> str:
        return create_identity_token(user.id, user.role)

    def register(self, email: str, password: str, name: str) -> Tuple[str, UserPublic]:
        """
        Регистрация нового пользователя (роль всегда user).

        :raises ValidationError: невалидный email, короткий пароль или имя
        :raises Conflict: email уже зарегистрирован
        """
        logger.info("🔄 Попытка регистрации: %s", email)

        try:
            data = UserRegister(email=email, password=password, name=name)
        except PydanticValidationError as e:
            logger.warning("⚠️ Невалидные данные регистрации: %s", email)
            raise ValidationError.from_pydantic(e)

        # Хешируем до захвата блокировки: bcrypt медленный
        hashed = hash_password(data.password)

        with self._lock:
            if self.users.get_by_email(data.email) is not None:
                logger.warning("⚠️ Email уже зарегистрирован: %s", data.email)
                raise Conflict("User already exists")

            user = UserAccount(
                id=f"user-{uuid.uuid4().hex}",
                email=data.email,
                hashed_password=hashed,
                name=data.name,
                role=Role.USER,
                created_at=self.clock(),
            )
            self.users.add(user)

        logger.info("Пользователь зарегистрирован: %s (%s)", user.email, user.id)
        return self.issue_token(user), self.public_view(user)

    def login(self, email: str, password: str) -> Tuple[str, UserPublic]:
        """Вход. Неизвестный email и неверный пароль дают одну и ту же ошибку"""
        logger.info("🔄 Попытка входа: %s", email)

        user = self.users.get_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            logger.warning("⚠️ Неудачная попытка входа: %s", email)
            raise Unauthorized("Invalid credentials")

        logger.info("Пользователь вошёл: %s", user.email)
        return self.issue_token(user), self.public_view(user)

    def verify(self, token: Optional[str]) -> Optional[TokenIdentity]:
        """
        Проверяет токен, не обращаясь к хранилищу.

        Никогда не бросает исключений: любой невалидный токен -> None,
        и вызывающий код считает запрос анонимным.
        """
        return decode_identity(token)

    def get_account(self, user_id: str) -> UserAccount:
        user = self.users.get(user_id)
        if user is None:
            logger.warning("⚠️ Пользователь не найден: %s", user_id)
            raise NotFound("User not found")
        return user

    def current_user(self, user_id: str) -> UserPublic:
        return self.public_view(self.get_account(user_id))

    def seed_admin(
        self,
        email: str = config.ADMIN_EMAIL,
        password: str = config.ADMIN_PASSWORD,
        name: str = config.ADMIN_NAME,
    ) -> UserPublic:
        """Создаёт администратора по умолчанию, если его ещё нет"""
        with self._lock:
            existing = self.users.get(config.ADMIN_ID) or self.users.get_by_email(email)
            if existing is not None:
                logger.info("Администратор уже существует: %s", existing.email)
                return self.public_view(existing)

            admin = UserAccount(
                id=config.ADMIN_ID,
                email=email,
                hashed_password=hash_password(password),
                name=name,
                role=Role.ADMIN,
                created_at=self.clock(),
            )
            self.users.add(admin)

        logger.info("Администратор создан: %s", admin.email)
        return self.public_view(admin)
