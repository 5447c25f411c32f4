# supplychain/core/exceptions.py
from fastapi import HTTPException, status


class AuthException(HTTPException):
    """Base authentication exception."""
    def __init__(self, detail: str, status_code: int = status.HTTP_401_UNAUTHORIZED):
        super().__init__(status_code=status_code, detail=detail)


class InvalidCredentialsException(AuthException):
    def __init__(self):
        super().__init__("Invalid credentials")


class InvalidTokenException(AuthException):
    def __init__(self):
        super().__init__("Invalid or expired token")


class UserNotFoundException(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )


class UserAlreadyExistsException(HTTPException):
    def __init__(self, role: str = "user"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{role} already exists"
        )


class MissingFieldsException(HTTPException):
    def __init__(self, detail: str = "All fields required"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ForbiddenException(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundException(HTTPException):
    def __init__(self, what: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{what} not found"
        )


# =========================
# ДОМЕННЫЕ ОШИБКИ (не HTTP)
# =========================

class SupplyChainError(Exception):
    """Корень доменных ошибок."""


class PersistenceError(SupplyChainError):
    """Любая ошибка хранилища документов. Всегда пробрасывается наверх."""


class AnalyticsError(SupplyChainError):
    pass


class RateLimitedError(AnalyticsError):
    """Внешняя квота исчерпана (HTTP 429 или отказ локального лимитера)."""
    def __init__(self, message: str = "Rate limited", retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class RetriesExhaustedError(AnalyticsError):
    def __init__(self, attempts: int):
        super().__init__(f"Retries exhausted after {attempts} attempts")
        self.attempts = attempts


class MalformedResponseError(AnalyticsError):
    """Ответ модели не разбирается как JSON объект."""


class LLMUnavailableError(AnalyticsError):
    """Клиент модели не настроен (нет ключа)."""


class LLMRequestError(AnalyticsError):
    """Любой другой сбой вызова модели: сеть, 4xx/5xx, пустой ответ."""


class VisionError(SupplyChainError):
    pass


class VisionServiceUnavailableError(VisionError):
    def __init__(self, message: str = "Vision API client is not configured"):
        super().__init__(message)


class VisionRequestError(VisionError):
    pass
