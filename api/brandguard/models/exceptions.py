"""Custom exception classes for the BrandGuard API.

Vendor failures are mapped onto a small taxonomy so routes can return a
meaningful status code instead of a generic 500, and domain errors (missing
workspace, exhausted free scans, bad uploads) carry their own status.
"""

from typing import Dict, Any, Optional, List
from fastapi import HTTPException


class BrandGuardException(Exception):
    """Base exception for all BrandGuard API errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class GeminiException(BrandGuardException):
    """Raised when a Gemini API call fails."""

    def __init__(self,
                 message: str,
                 status_code: Optional[int] = None,
                 model: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.model = model
        details = dict(details or {})
        if model:
            details.setdefault("model", model)
        super().__init__(message, details)


class GeminiBadRequestException(GeminiException):
    """Raised when Gemini rejects the request payload (HTTP 400)."""

    def __init__(self, message: str, model: Optional[str] = None):
        super().__init__(message, status_code=400, model=model)


class GeminiAuthenticationException(GeminiException):
    """Raised when the Gemini API key is missing or rejected."""

    def __init__(self, status_code: Optional[int] = None):
        super().__init__("Gemini API authentication failed", status_code=status_code or 401)


class GeminiRateLimitException(GeminiException):
    """Raised when Gemini quota or rate limits are exceeded."""

    def __init__(self, retry_after: Optional[int] = None, model: Optional[str] = None):
        details = {"retry_after_seconds": retry_after} if retry_after else {}
        super().__init__("Gemini API rate limit exceeded", status_code=429, model=model, details=details)


class GeminiUnavailableException(GeminiException):
    """Raised when Gemini returns a server-side error."""

    def __init__(self, status_code: int, model: Optional[str] = None):
        super().__init__(f"Gemini API unavailable ({status_code})", status_code=status_code, model=model)


class GeminiTimeoutException(GeminiException):
    """Raised when a Gemini call does not complete in time."""

    def __init__(self, model: Optional[str] = None):
        super().__init__("Gemini API request timed out", model=model)


class ContentBlockedException(GeminiException):
    """Raised when Gemini's safety filters block the prompt or the answer."""

    def __init__(self, reason: str, model: Optional[str] = None):
        self.reason = reason
        super().__init__(f"Content blocked by safety filters: {reason}", model=model, details={"block_reason": reason})


class ContractViolationException(BrandGuardException):
    """Raised when model output does not satisfy its JSON contract."""

    def __init__(self, contract_name: str, errors: List[str]):
        self.contract_name = contract_name
        self.validation_errors = errors
        message = f"Model output failed contract {contract_name}"
        super().__init__(message, {"contract": contract_name, "validation_errors": errors})


class NotFoundException(BrandGuardException):
    """Raised when a workspace-scoped resource does not exist."""

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found", {"resource": resource, "id": resource_id})


class MediaValidationException(BrandGuardException):
    """Raised when an uploaded image or video cannot be analysed."""

    def __init__(self, message: str, too_large: bool = False, details: Optional[Dict[str, Any]] = None):
        self.too_large = too_large
        super().__init__(message, details)


class FreeScanLimitExceeded(BrandGuardException):
    """Raised when an anonymous session has used all of its free scans."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            "You've used all your free scans for this session.",
            {"limit": limit, "scans_remaining": 0},
        )


class RevisionStateException(BrandGuardException):
    """Raised when a revision request is not in a state that allows the action."""

    def __init__(self, request_id: str, status: str):
        super().__init__(
            f"Revision request {request_id} is already {status}",
            {"id": request_id, "status": status},
        )


class NothingToReviseException(BrandGuardException):
    """Raised when a rewrite is asked for a report whose checks all passed."""

    def __init__(self):
        super().__init__("No failing checks to revise")


class StorageException(BrandGuardException):
    """Raised when media storage operations fail."""

    def __init__(self,
                 operation: str,
                 key: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        self.key = key
        storage_details = details or {}
        if key:
            storage_details["key"] = key
        super().__init__(f"Storage {operation} failed", storage_details)


# HTTP Exception converters for FastAPI
def to_http_exception(exc: BrandGuardException, status_code: int = 500) -> HTTPException:
    """Convert custom exception to HTTPException for FastAPI."""
    detail = {
        "error": exc.__class__.__name__,
        "message": exc.message,
        **exc.details
    }
    return HTTPException(status_code=status_code, detail=detail)


def gemini_to_http_exception(exc: GeminiException) -> HTTPException:
    """Convert a Gemini failure to the status a client can act on."""
    if isinstance(exc, ContentBlockedException):
        return to_http_exception(exc, 422)
    if isinstance(exc, GeminiTimeoutException):
        return to_http_exception(exc, 504)
    status_code_map = {
        400: 502,  # Our request was malformed; not the caller's fault
        401: 502,  # Auth errors become bad gateway
        403: 502,
        404: 502,
        429: 429,  # Rate limit stays rate limit
        500: 503,
        502: 503,
        503: 503,
        504: 504,
    }
    status_code = status_code_map.get(exc.status_code, 502)
    return to_http_exception(exc, status_code)


def contract_to_http_exception(exc: ContractViolationException) -> HTTPException:
    """Model produced output we cannot trust: upstream error."""
    detail = {
        "error": "ContractViolation",
        "message": exc.message,
        "guardrails": exc.validation_errors,
    }
    return HTTPException(status_code=502, detail=detail)


def not_found_to_http_exception(exc: NotFoundException) -> HTTPException:
    return to_http_exception(exc, status_code=404)


def media_to_http_exception(exc: MediaValidationException) -> HTTPException:
    return to_http_exception(exc, status_code=413 if exc.too_large else 400)


def free_scan_to_http_exception(exc: FreeScanLimitExceeded) -> HTTPException:
    return to_http_exception(exc, status_code=429)


def revision_state_to_http_exception(exc: RevisionStateException) -> HTTPException:
    return to_http_exception(exc, status_code=409)


def nothing_to_revise_to_http_exception(exc: NothingToReviseException) -> HTTPException:
    return to_http_exception(exc, status_code=409)


def storage_to_http_exception(exc: StorageException) -> HTTPException:
    return to_http_exception(exc, status_code=500)


# Exception handler registry
EXCEPTION_HANDLERS = {
    GeminiException: gemini_to_http_exception,
    ContractViolationException: contract_to_http_exception,
    NotFoundException: not_found_to_http_exception,
    MediaValidationException: media_to_http_exception,
    FreeScanLimitExceeded: free_scan_to_http_exception,
    RevisionStateException: revision_state_to_http_exception,
    NothingToReviseException: nothing_to_revise_to_http_exception,
    StorageException: storage_to_http_exception,
}
