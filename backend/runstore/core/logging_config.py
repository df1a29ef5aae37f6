import logging
import sys
from pathlib import Path
from typing import Optional

from runstore.config import ENVIRONMENT, LOG_LEVEL, LOGS_DIR

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Библиотеки, которые на INFO пишут слишком много
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "passlib", "multipart")


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.FileHandler:
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_to_files: bool = True, logs_dir: Optional[Path] = None):
    """
    Настройка логирования для RunStore.

    - Консоль: INFO и выше (в development - уровень LOG_LEVEL)
    - app.log: всё, что прошло через корневой логгер
    - errors.log: только ошибки (неудачные запросы, необработанные исключения)

    :param log_to_files: писать ли логи в файлы (в тестах отключаем)
    :param logs_dir: куда писать файлы, по умолчанию LOGS_DIR
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(LOG_LEVEL)
    root_logger.handlers.clear()

    # ===== CONSOLE HANDLER =====
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL if ENVIRONMENT == "development" else logging.INFO)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # ===== FILE HANDLERS =====
    if log_to_files:
        log_dir = logs_dir or LOGS_DIR
        log_dir.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_file_handler(log_dir / "app.log", logging.DEBUG, formatter))
        root_logger.addHandler(_file_handler(log_dir / "errors.log", logging.ERROR, formatter))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("runstore").debug(
        "Логирование настроено: level=%s, files=%s", LOG_LEVEL, log_to_files
    )
    return root_logger
