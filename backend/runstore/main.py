"""
RunStore API - главный файл приложения.
"""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from runstore import config
from runstore.core.errors import StoreError, ValidationError
from runstore.core.logging_config import setup_logging
from runstore.dependencies import (
    build_services,
    get_identity_service,
    get_registry,
    require_admin,
    require_user,
)
from runstore.schemas import (
    AppCreate,
    AppRecord,
    AppStatus,
    AppStatusUpdate,
    AuthResponse,
    TokenIdentity,
    UserLogin,
    UserPublic,
    UserRegister,
)
from runstore.services.identity_service import IdentityService
from runstore.services.submission_registry import SubmissionRegistry

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# ============= LIFESPAN EVENT =============

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Код ДО yield - старт: создаём администратора по умолчанию.
    Код ПОСЛЕ yield - остановка. Данные in-memory хранилища при этом теряются.
    """
    # ===== STARTUP =====
    logger.info("RunStore API запускается...")

    # bcrypt медленный - хешируем пароль админа вне event loop
    await run_in_threadpool(app.state.identity.seed_admin)

    logger.info("Документация: http://%s:%s/docs", config.API_HOST, config.API_PORT)
    logger.info("API готов к работе!")

    yield  # Приложение работает

    # ===== SHUTDOWN =====
    logger.info("Приложение остановлено")


# ============= ОБРАБОТКА ОШИБОК =============

async def store_error_handler(request: Request, exc: StoreError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Ошибки FastAPI приводим к тому же виду, что и ValidationError сервисов
    errors = {}
    for err in exc.errors():
        loc = [str(part) for part in err["loc"] if part not in ("body", "query", "path")]
        errors.setdefault(".".join(loc) or "__root__", err["msg"])
    logger.warning("⚠️ Невалидный запрос %s %s: %s", request.method, request.url.path, errors)
    error = ValidationError("Invalid input", errors)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Необработанная ошибка: %s", str(exc), exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "kind": "InternalError"},
    )


# ============= HEALTH CHECK =============

health_router = APIRouter(tags=["Health"])


@health_router.get("/")
async def root():
    """Проверка что API работает"""
    return {
        "message": "RunStore API",
        "status": "healthy",
        "version": API_VERSION,
        "docs": "/docs",
    }


@health_router.get("/health")
async def health(request: Request):
    """Проверка состояния сервиса"""
    logger.debug("Health check вызван")
    return {
        "status": "ok",
        "storage": config.STORAGE_BACKEND,
        "environment": config.ENVIRONMENT,
        "services": {
            "identity": getattr(request.app.state, "identity", None) is not None,
            "registry": getattr(request.app.state, "registry", None) is not None,
        },
    }


# ============= AUTH ENDPOINTS =============

auth_router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@auth_router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserRegister, identity: IdentityService = Depends(get_identity_service)):
    """Регистрация нового пользователя"""
    token, user = await run_in_threadpool(identity.register, payload.email, payload.password, payload.name)
    return AuthResponse(token=token, user=user)


@auth_router.post("/login", response_model=AuthResponse)
async def login(credentials: UserLogin, identity: IdentityService = Depends(get_identity_service)):
    """Вход пользователя"""
    token, user = await run_in_threadpool(identity.login, credentials.email, credentials.password)
    return AuthResponse(token=token, user=user)


@auth_router.get("/me", response_model=UserPublic)
async def me(
    caller: TokenIdentity = Depends(require_user),
    identity: IdentityService = Depends(get_identity_service),
):
    """Текущий пользователь по токену"""
    return identity.current_user(caller.user_id)


# ============= APPS ENDPOINTS =============

apps_router = APIRouter(prefix="/api/v1/apps", tags=["Apps"])


@apps_router.get("", response_model=List[AppRecord])
async def list_apps(
    app_status: Optional[AppStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    registry: SubmissionRegistry = Depends(get_registry),
):
    """Каталог: фильтр по статусу и поиск по имени/описанию"""
    return registry.list(status=app_status, search=search)


@apps_router.post("", response_model=AppRecord, status_code=status.HTTP_201_CREATED)
async def submit_app(
    payload: AppCreate,
    caller: TokenIdentity = Depends(require_user),
    registry: SubmissionRegistry = Depends(get_registry),
):
    """Отправить приложение на модерацию"""
    return registry.create(caller.user_id, payload)


# /mine объявлен до /{app_id}, иначе "mine" поймается как id
@apps_router.get("/mine", response_model=List[AppRecord])
async def my_apps(
    caller: TokenIdentity = Depends(require_user),
    registry: SubmissionRegistry = Depends(get_registry),
):
    """Приложения текущего пользователя"""
    return registry.my_apps(caller.user_id)


@apps_router.get("/{app_id}", response_model=AppRecord)
async def get_app(app_id: str, registry: SubmissionRegistry = Depends(get_registry)):
    return registry.get(app_id)


@apps_router.patch("/{app_id}/status", response_model=AppRecord)
async def update_status(
    app_id: str,
    payload: AppStatusUpdate,
    caller: TokenIdentity = Depends(require_admin),
    registry: SubmissionRegistry = Depends(get_registry),
):
    """Решение модератора (только админ)"""
    return registry.update_status(caller.user_id, app_id, payload.status, payload.rejection_reason)


@apps_router.post("/{app_id}/downloads", response_model=AppRecord)
async def increment_downloads(app_id: str, registry: SubmissionRegistry = Depends(get_registry)):
    """Засчитать скачивание (без проверки статуса)"""
    return registry.increment_downloads(app_id)


# ============= СОЗДАНИЕ ПРИЛОЖЕНИЯ =============

def create_app(
    identity: Optional[IdentityService] = None,
    registry: Optional[SubmissionRegistry] = None,
) -> FastAPI:
    """
    Собирает FastAPI приложение. В тестах сюда передаются сервисы
    с in-memory хранилищем, в проде они строятся по конфигу.
    """
    if identity is None or registry is None:
        identity, registry = build_services()

    app = FastAPI(
        title="RunStore API",
        description="App store: upload, moderation and download of Android apps",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.identity = identity
    app.state.registry = registry

    # ============= CORS =============
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(apps_router)

    return app


def get_application() -> FastAPI:
    """Точка входа для uvicorn: `uvicorn runstore.main:get_application --factory`"""
    setup_logging()
    return create_app()
