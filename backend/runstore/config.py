"""
Конфигурация бэкенда RunStore.
"""

from pathlib import Path
from dotenv import load_dotenv
import os

load_dotenv()

# Корневая директория проекта и базовые настройки
BASE_DIR = Path(__file__).parent.parent  # backend/
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOGS_DIR = Path(os.getenv("LOGS_DIR", str(BASE_DIR / "logs")))


# ============= DATA =============
DATA_DIR = BASE_DIR / "data"

# memory - всё в словарях процесса (как в исходном сервисе), sql - SQLAlchemy
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory").lower()


def resolve_sqlite_url(url: str, base_dir: Path = BASE_DIR) -> str:
    """Относительный путь SQLite (sqlite:///data/x.db) считаем от backend/, а не от текущей директории"""
    prefix = "sqlite:///"
    if not url.startswith(prefix):
        return url
    path = url[len(prefix):]
    if not path or path == ":memory:" or Path(path).is_absolute():
        return url
    return f"{prefix}{(base_dir / path).as_posix()}"


DATABASE_URL = resolve_sqlite_url(os.getenv("DATABASE_URL", f"sqlite:///{(DATA_DIR / 'runstore.db').as_posix()}"))


# ============= БЕЗОПАСНОСТЬ =============
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))
ALGORITHM = os.getenv("ALGORITHM", "HS256")
SECRET_KEY = os.getenv("SECRET_KEY", "runstore-dev-secret-change-me")
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))


# ============= API =============
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


# ============= АДМИНИСТРАТОР ПО УМОЛЧАНИЮ =============
ADMIN_ID = "admin-1"
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@runstore.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Admin User")


# ============= МОДЕРАЦИЯ =============
REJECTION_PLACEHOLDER = "No reason provided"
