# backend/runstore/services/submission_registry.py
import logging
import threading
import uuid
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from runstore.config import REJECTION_PLACEHOLDER
from runstore.core.errors import Forbidden, NotFound, ValidationError
from runstore.core.repository import AppRepository
from runstore.schemas import AppCreate, AppRecord, AppStatus, Role
from runstore.services.identity_service import IdentityService, utc_now

logger = logging.getLogger(__name__)


def newest_first(apps: List[AppRecord]) -> List[AppRecord]:
    # sorted стабилен и с reverse=True: при равном created_at остаётся порядок вставки
    return sorted(apps, key=lambda app: app.created_at, reverse=True)


def parse_status(value) -> AppStatus:
    try:
        return AppStatus(value)
    except ValueError:
        raise ValidationError("Invalid status", {"status": f"unknown status {value!r}"})


def matches_search(app: AppRecord, search: str) -> bool:
    needle = search.lower()
    return needle in app.name.lower() or needle in app.description.lower()


class SubmissionRegistry:
    """Каталог приложений: загрузка, модерация, выдача списков"""

    def __init__(
        self,
        apps: AppRepository,
        identity: IdentityService,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.apps = apps
        self.identity = identity
        self.clock = clock
        # Все read-modify-write операции над приложениями идут под одной блокировкой
        self._lock = threading.RLock()

    def _require(self, app_id: str) -> AppRecord:
        app = self.apps.get(app_id)
        if app is None:
            logger.warning("⚠️ Приложение не найдено: %s", app_id)
            raise NotFound("App not found")
        return app

    def create(self, caller_id: str, fields: Union[AppCreate, Mapping[str, Any]]) -> AppRecord:
        """
        Создаёт приложение в статусе pending от имени вызывающего пользователя.

        :param caller_id: id аутентифицированного пользователя
        :param fields: AppCreate или dict (camelCase или snake_case ключи)
        :raises ValidationError: поля не прошли проверку
        :raises NotFound: пользователь caller_id не существует
        """
        if not isinstance(fields, AppCreate):
            try:
                fields = AppCreate.model_validate(fields)
            except PydanticValidationError as e:
                logger.warning("⚠️ Невалидные данные приложения от %s", caller_id)
                raise ValidationError.from_pydantic(e)

        uploader = self.identity.get_account(caller_id)
        now = self.clock()

        app = AppRecord(
            id=f"app-{uuid.uuid4().hex}",
            name=fields.name,
            package_name=fields.package_name,
            description=fields.description,
            version=fields.version,
            icon_url=fields.icon_url,
            apk_url=fields.apk_url,
            file_size=fields.file_size,
            status=AppStatus.PENDING,
            uploader_id=uploader.id,
            uploader_name=uploader.name,
            rejection_reason=None,
            downloads=0,
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            self.apps.add(app)

        logger.info("📦 Приложение отправлено на модерацию: %s (%s) от %s", app.name, app.id, uploader.email)
        return app

    def list(self, status: Optional[AppStatus] = None, search: Optional[str] = None) -> List[AppRecord]:
        """Публичный список: фильтр по статусу и поиск по имени/описанию, новые первыми"""
        apps = self.apps.list_all()

        if status is not None:
            status = parse_status(status)
            apps = [app for app in apps if app.status == status]

        if search:
            apps = [app for app in apps if matches_search(app, search)]

        logger.debug("Список приложений: status=%s, search=%r, найдено %d", status, search, len(apps))
        return newest_first(apps)

    def get(self, app_id: str) -> AppRecord:
        return self._require(app_id)

    def my_apps(self, caller_id: str) -> List[AppRecord]:
        return newest_first([app for app in self.apps.list_all() if app.uploader_id == caller_id])

    def update_status(
        self,
        caller_id: str,
        app_id: str,
        status: AppStatus,
        reason: Optional[str] = None,
    ) -> AppRecord:
        """
        Решение модератора. Терминального статуса нет: админ может
        пересмотреть решение в любую сторону, в том числе вернуть в pending.

        - rejected: причина сохраняется как есть, пустая или None заменяется заглушкой
        - approved / pending: причина очищается
        - uploader_id, created_at и downloads не меняются

        :raises Forbidden: вызывающий не администратор
        :raises NotFound: приложения нет
        """
        caller = self.identity.get_account(caller_id)
        if caller.role != Role.ADMIN:
            logger.warning("⚠️ Попытка модерации без прав: %s -> %s", caller_id, app_id)
            raise Forbidden("Admin access required")

        status = parse_status(status)

        with self._lock:
            app = self._require(app_id)
            previous = app.status

            app.status = status
            if status == AppStatus.REJECTED:
                app.rejection_reason = reason if reason else REJECTION_PLACEHOLDER
            else:
                app.rejection_reason = None
            app.updated_at = self.clock()

            self.apps.save(app)

        logger.info("Статус приложения %s: %s -> %s (админ %s)", app.id, previous.value, status.value, caller.email)
        return app

    def increment_downloads(self, app_id: str) -> AppRecord:
        """
        +1 к счётчику скачиваний.

        Статус не проверяется: скачать можно и pending/rejected приложение,
        если знать id. Это решение продукта, а не баг хранилища.
        """
        with self._lock:
            app = self._require(app_id)
            app.downloads += 1
            self.apps.save(app)

        logger.debug("Скачивание %s, всего %d", app.id, app.downloads)
        return app
