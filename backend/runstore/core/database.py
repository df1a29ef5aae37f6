"""
Настройка подключения к базе данных.
"""

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from runstore import config

# Базовый класс для моделей
Base = declarative_base()


def make_engine(url: str = config.DATABASE_URL) -> Engine:
    """
    Создаёт движок БД.

    Для SQLite разрешаем работу из разных потоков, а in-memory базу
    держим в одном соединении, иначе каждая сессия увидит пустую БД.
    """
    if not url.startswith("sqlite"):
        return create_engine(url)

    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if url.startswith("sqlite:///"):
        # Папку под файл БД создаём сами, SQLite этого не делает
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(url, connect_args={"check_same_thread": False})


def make_session_factory(bind: Engine) -> sessionmaker:
    """Фабрика сессий для работы с БД"""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)


def create_tables(bind: Engine) -> None:
    # Импорт нужен, чтобы таблицы зарегистрировались в Base.metadata
    from runstore.core import models  # noqa: F401

    Base.metadata.create_all(bind=bind)


def drop_tables(bind: Engine) -> None:
    from runstore.core import models  # noqa: F401

    Base.metadata.drop_all(bind=bind)
