# iam/shared/utils/responses.py

"""
Response envelope helpers.

Successful calls answer ``{success, message, data}``; failures answer
``{success: false, message, code, errors}``.
"""

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Success envelope, validated by the route's ``ApiResponse`` model."""
    return {"success": True, "message": message, "data": data}


def error_response(
        status_code: int,
        message: str,
        *,
        code: Optional[str] = None,
        errors: Any = None,
        headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    payload = {
        "success": False,
        "message": message,
        "code": code,
        "errors": errors,
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload), headers=headers)
