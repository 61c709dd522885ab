import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sitecheck.utils.response import error_response

logger = logging.getLogger(__name__)


class AppException(Exception):
    def __init__(self, message: str, status_code: int = 400, data=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.data = data


class NotFoundError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class InvalidPathError(AppException):
    def __init__(self, path: str):
        super().__init__(f"Campo inexistente: {path}", status_code=400)
        self.path = path


class ChecklistValidationError(AppException):
    """Pre-flight or step validation failure, scoped to fields."""

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message, status_code=422, data={"errors": errors or []})
        self.errors = errors or []


class CaptureError(AppException):
    pass


class CompressionError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class UploadError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=502)


class DeleteError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=502)


class PersistenceError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=503)


class AssignmentLinkError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=502)


class InvalidTransitionError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class AuthorizationError(AppException):
    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message, status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.message, data=exc.data),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_response("Erro interno do servidor"),
        )
