"""
Хранилища пользователей и приложений.

Сервисы работают только с интерфейсами UserRepository / AppRepository.
InMemory* - словари в памяти процесса (по умолчанию и в тестах),
Sql* - SQLAlchemy (SQLite или любая другая БД по DATABASE_URL).
"""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from runstore.core import models
from runstore.core.errors import Conflict
from runstore.schemas import AppRecord, UserAccount

logger = logging.getLogger(__name__)


class UserRepository(ABC):

    @abstractmethod
    def get(self, user_id: str) -> Optional[UserAccount]:
        ...

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[UserAccount]:
        ...

    @abstractmethod
    def add(self, user: UserAccount) -> UserAccount:
        ...

    @abstractmethod
    def list_all(self) -> List[UserAccount]:
        """Все пользователи в порядке добавления"""


class AppRepository(ABC):

    @abstractmethod
    def get(self, app_id: str) -> Optional[AppRecord]:
        ...

    @abstractmethod
    def add(self, app: AppRecord) -> AppRecord:
        ...

    @abstractmethod
    def save(self, app: AppRecord) -> AppRecord:
        """Перезаписывает существующую запись целиком"""

    @abstractmethod
    def list_all(self) -> List[AppRecord]:
        """Все приложения в порядке добавления"""


# ============= IN-MEMORY =============

class InMemoryUserRepository(UserRepository):
    """
    Пользователи в словаре. Наружу отдаём копии, чтобы никто не правил хранилище мимо сервиса.

    Каждое чтение и запись идут под блокировкой.
    """

    def __init__(self):
        self._users: Dict[str, UserAccount] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[UserAccount]:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def get_by_email(self, email: str) -> Optional[UserAccount]:
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user.model_copy()
        return None

    def add(self, user: UserAccount) -> UserAccount:
        with self._lock:
            if user.id in self._users:
                raise Conflict("User already exists")
            self._users[user.id] = user.model_copy()
        return user

    def list_all(self) -> List[UserAccount]:
        with self._lock:
            return [user.model_copy() for user in self._users.values()]


class InMemoryAppRepository(AppRepository):

    def __init__(self):
        self._apps: Dict[str, AppRecord] = {}
        self._lock = threading.Lock()

    def get(self, app_id: str) -> Optional[AppRecord]:
        with self._lock:
            app = self._apps.get(app_id)
            return app.model_copy() if app else None

    def add(self, app: AppRecord) -> AppRecord:
        with self._lock:
            self._apps[app.id] = app.model_copy()
        return app

    def save(self, app: AppRecord) -> AppRecord:
        # dict сохраняет исходную позицию ключа, порядок вставки не меняется
        with self._lock:
            self._apps[app.id] = app.model_copy()
        return app

    def list_all(self) -> List[AppRecord]:
        with self._lock:
            return [app.model_copy() for app in self._apps.values()]


# ============= SQL =============

def _as_utc(value: datetime) -> datetime:
    # SQLite теряет tzinfo, а сравнивать naive и aware datetime нельзя
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_user(row: models.User) -> UserAccount:
    user = UserAccount.model_validate(row)
    user.created_at = _as_utc(user.created_at)
    return user


def _to_app(row: models.App) -> AppRecord:
    app = AppRecord.model_validate(row)
    app.created_at = _as_utc(app.created_at)
    app.updated_at = _as_utc(app.updated_at)
    return app


class SqlUserRepository(UserRepository):
    """Пользователи в БД, одна короткая сессия на вызов"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self, user_id: str) -> Optional[UserAccount]:
        with self.session_factory() as db:
            row = db.query(models.User).filter(models.User.id == user_id).first()
            return _to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserAccount]:
        with self.session_factory() as db:
            row = db.query(models.User).filter(models.User.email == email).first()
            return _to_user(row) if row else None

    def add(self, user: UserAccount) -> UserAccount:
        data = user.model_dump()
        data["role"] = user.role.value
        with self.session_factory() as db:
            db.add(models.User(**data))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.warning("⚠️ Нарушена уникальность при добавлении пользователя: %s", user.email)
                raise Conflict("User already exists")
        return user

    def list_all(self) -> List[UserAccount]:
        with self.session_factory() as db:
            rows = db.query(models.User).order_by(models.User.pk).all()
            return [_to_user(row) for row in rows]


class SqlAppRepository(AppRepository):

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _columns(app: AppRecord) -> dict:
        data = app.model_dump()
        data["status"] = app.status.value
        return data

    def get(self, app_id: str) -> Optional[AppRecord]:
        with self.session_factory() as db:
            row = db.query(models.App).filter(models.App.id == app_id).first()
            return _to_app(row) if row else None

    def add(self, app: AppRecord) -> AppRecord:
        with self.session_factory() as db:
            db.add(models.App(**self._columns(app)))
            db.commit()
        return app

    def save(self, app: AppRecord) -> AppRecord:
        with self.session_factory() as db:
            row = db.query(models.App).filter(models.App.id == app.id).first()
            if row is None:
                raise LookupError(f"App {app.id} is not stored")
            for key, value in self._columns(app).items():
                setattr(row, key, value)
            db.commit()
        return app

    def list_all(self) -> List[AppRecord]:
        with self.session_factory() as db:
            rows = db.query(models.App).order_by(models.App.pk).all()
            return [_to_app(row) for row in rows]
