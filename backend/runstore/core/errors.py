"""
Типизированные ошибки ядра.

Сервисы бросают только эти исключения, а main.py переводит их в HTTP ответы.
"""
from typing import Dict, Optional

from fastapi import status


class StoreError(Exception):
    """Базовая ошибка: вид ошибки + человекочитаемое сообщение"""

    kind = "StoreError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind}


class ValidationError(StoreError):
    """Невалидные входные данные (с ошибками по полям)"""

    kind = "ValidationError"
    status_code = 422

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["errors"] = self.errors
        return body

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        """Собирает ошибки по полям из pydantic.ValidationError"""
        errors = {}
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or "__root__"
            errors.setdefault(field, err["msg"])
        return cls("Invalid input", errors)


class Unauthorized(StoreError):
    kind = "Unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(StoreError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(StoreError):
    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class NotFound(StoreError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
