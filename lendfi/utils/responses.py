"""
Response envelope shared by every endpoint:
``{"success": bool, "message"?: str, "data"?: {...}, "errors"?: [str]}``
"""
from typing import Any, List, Optional

from fastapi.responses import JSONResponse


def success_response(data: Any = None, message: Optional[str] = None) -> dict:
    body = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def error_response(status_code: int, message: str, errors: Optional[List[str]] = None) -> JSONResponse:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body)
