from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from marketledger.runtime.errors import ApplyError

# ApplyError.code -> HTTP status
_STATUS_BY_CODE: Dict[str, int] = {
    "not_found": 404,
    "unauthorized": 403,
    "forbidden": 403,
    "price_mismatch": 402,
    "already_exists": 409,
    "not_renewable": 409,
    "overflow": 422,
    "underflow": 422,
    "invalid_payload": 422,
    "invalid_tx": 400,
    "unsupported_tx": 400,
    "settlement_failed": 502,
}


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def unauthorized(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(401, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})

    @staticmethod
    def from_apply_error(e: ApplyError) -> "ApiError":
        code = str(e.code or "apply_error")
        if code.startswith("schema:"):
            status = 422
        else:
            status = _STATUS_BY_CODE.get(code, 400)
        details = e.details if isinstance(e.details, dict) else ({} if e.details is None else {"details": e.details})
        return ApiError(status, code, str(e.reason), details)

    def to_json(self) -> Dict[str, Any]:
        return {"ok": False, "error": {"code": self.code, "message": self.message, "details": self.details}}
