# Таблицы пользователей и приложений для SQL хранилища

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from runstore.core.database import Base


class User(Base):
    """SQLAlchemy модель - структура таблицы users"""
    __tablename__ = "users"

    pk = Column(Integer, primary_key=True, autoincrement=True)  # порядок вставки
    id = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")
    created_at = Column(DateTime(timezone=True), nullable=False)


class App(Base):
    """SQLAlchemy модель - структура таблицы apps"""
    __tablename__ = "apps"

    pk = Column(Integer, primary_key=True, autoincrement=True)  # порядок вставки
    id = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    package_name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    version = Column(String, nullable=False)
    icon_url = Column(String, nullable=False)
    apk_url = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    status = Column(String, index=True, nullable=False, default="pending")
    uploader_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    uploader_name = Column(String, nullable=False)
    rejection_reason = Column(Text, nullable=True)
    downloads = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
