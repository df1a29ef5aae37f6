"""
Сборка сервисов и FastAPI зависимости для трёх уровней доступа:
публичный, аутентифицированный, администратор.
"""
import logging
from typing import Optional, Tuple

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from runstore import config
from runstore.core.database import create_tables, make_engine, make_session_factory
from runstore.core.errors import Forbidden, Unauthorized
from runstore.core.repository import (
    InMemoryAppRepository,
    InMemoryUserRepository,
    SqlAppRepository,
    SqlUserRepository,
)
from runstore.schemas import Role, TokenIdentity
from runstore.services.identity_service import IdentityService
from runstore.services.submission_registry import SubmissionRegistry

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def build_services(
    storage_backend: str = config.STORAGE_BACKEND,
    database_url: str = config.DATABASE_URL,
) -> Tuple[IdentityService, SubmissionRegistry]:
    """Создаёт хранилища и сервисы по настройкам"""
    if storage_backend == "sql":
        engine = make_engine(database_url)
        create_tables(engine)
        session_factory = make_session_factory(engine)
        users, apps = SqlUserRepository(session_factory), SqlAppRepository(session_factory)
        logger.info("Хранилище: SQL (%s)", engine.url.render_as_string(hide_password=True))
    elif storage_backend == "memory":
        users, apps = InMemoryUserRepository(), InMemoryAppRepository()
        logger.info("Хранилище: память процесса (данные не сохраняются между запусками)")
    else:
        raise ValueError(f"Unknown STORAGE_BACKEND: {storage_backend!r}")

    identity = IdentityService(users)
    return identity, SubmissionRegistry(apps, identity)


def get_identity_service(request: Request) -> IdentityService:
    return request.app.state.identity


def get_registry(request: Request) -> SubmissionRegistry:
    return request.app.state.registry


def get_optional_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    identity: IdentityService = Depends(get_identity_service),
) -> Optional[TokenIdentity]:
    """Публичный уровень: нет токена или он невалиден - значит аноним"""
    if credentials is None:
        return None
    return identity.verify(credentials.credentials)


def require_user(caller: Optional[TokenIdentity] = Depends(get_optional_caller)) -> TokenIdentity:
    if caller is None:
        raise Unauthorized("Authentication required")
    return caller


def require_admin(caller: TokenIdentity = Depends(require_user)) -> TokenIdentity:
    if caller.role != Role.ADMIN:
        logger.warning("⚠️ Доступ к админскому методу без прав: %s", caller.user_id)
        raise Forbidden("Admin access required")
    return caller
