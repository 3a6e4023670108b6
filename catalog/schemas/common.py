from pydantic import BaseModel


# ─── Error Detail (per field) ──────────────────────────────────────────────────
class ErrorDetail(BaseModel):
    field: str
    message: str


# ─── Error Body ───────────────────────────────────────────────────────────────
class ErrorBody(BaseModel):
    code: str
    details: list[ErrorDetail] | None = None
    field: str | None = None


# ─── Error Response ───────────────────────────────────────────────────────────
class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: ErrorBody


# ─── Acknowledgement ──────────────────────────────────────────────────────────
class AckResponse(BaseModel):
    success: bool = True


# ─── Helper Functions ─────────────────────────────────────────────────────────
def success_response() -> dict:
    """Return the bare success acknowledgement used by delete."""
    return {"success": True}


def error_response(message: str, code: str, details: list | None = None,
                   field: str | None = None) -> dict:
    """Return a standardized error dict (used by the exception handlers)."""
    return {
        "success": False,
        "message": message,
        "error": {
            "code": code,
            "details": details,
            "field": field,
        }
    }


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    404: {"model": ErrorResponse, "description": "Vehicle not found"},
    500: {"model": ErrorResponse, "description": "Store failure"},
}
