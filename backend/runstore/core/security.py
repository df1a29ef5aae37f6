"""
Функции безопасности: хеширование паролей, создание и проверка JWT токенов.
"""
from runstore import config
from datetime import datetime, timezone, timedelta
from typing import Optional
from passlib.context import CryptContext
from jose import JWTError, jwt

from runstore.schemas import Role, TokenIdentity

# Контекст для хеширования паролей
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=config.BCRYPT_ROUNDS,
)


def hash_password(password: str) -> str:
    """Хеширует пароль (bcrypt, с солью)"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Проверяет пароль"""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Создаёт JWT токен.

    Args:
        data: Данные для вшивания в токен ({"sub": user_id, "role": role})
        expires_delta: Время жизни токена (отрицательное - сразу просрочен)
    """
    to_encode = data.copy()

    if expires_delta is not None:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)

    return encoded_jwt


def decode_access_token(token: str) -> Optional[dict]:
    """Декодирует JWT токен. Невалидный или просроченный токен -> None"""
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
        return payload
    except JWTError:
        return None


def create_identity_token(user_id: str, role: Role, expires_delta: Optional[timedelta] = None) -> str:
    """Токен пользователя: sub = id, role = роль на момент выдачи"""
    return create_access_token({"sub": user_id, "role": Role(role).value}, expires_delta=expires_delta)


def decode_identity(token: Optional[str]) -> Optional[TokenIdentity]:
    """
    Достаёт (user_id, role) из токена.

    Пустой, невалидный, просроченный токен или токен без sub / с неизвестной
    ролью -> None. Хранилище не трогаем.
    """
    if not token:
        return None

    payload = decode_access_token(token)
    if not payload:
        return None

    user_id = payload.get("sub")
    role = payload.get("role")
    if not isinstance(user_id, str) or not user_id:
        return None
    if role not in (Role.USER.value, Role.ADMIN.value):
        return None

    return TokenIdentity(user_id=user_id, role=Role(role))
