from typing import Any


def success_response(data: Any = None, message: str | None = None) -> dict:
    return {"status": "success", "data": data, "message": message}


def error_response(message: str, data: Any = None) -> dict:
    return {"status": "error", "data": data, "message": message}


def envelope(ok: bool, data: Any = None, message: str | None = None) -> dict:
    """Pick the success or error envelope for results that carry their own outcome."""
    if ok:
        return success_response(data=data, message=message)
    return error_response(message or "Erro", data=data)
