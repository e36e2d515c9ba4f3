"""
Utility functions for the application.
"""
import math
from typing import Any, Dict, Optional
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def pagination_meta(page: int, limit: int, total: int) -> Dict[str, int]:
    """Build the meta block for paginated responses."""
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def success_response(
    data: Any,
    message: Optional[str] = None,
    meta: Optional[Dict[str, int]] = None,
) -> Dict[str, Any]:
    """Format a success envelope."""
    response: Dict[str, Any] = {"success": True, "data": data}
    if message:
        response["message"] = message
    if meta:
        response["meta"] = meta
    return response


def error_response(message: str, code: Optional[str] = None, details: Any = None) -> Dict[str, Any]:
    """Format an error envelope."""
    error: Dict[str, Any] = {"message": message}
    if code:
        error["code"] = code
    if details:
        error["details"] = details
    return {"success": False, "error": error}
