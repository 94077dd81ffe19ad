"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, List, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Permission evaluator refused the transition"""
    error_code = "PERMISSION_DENIED"

    def __init__(self, message: str, reasons: Optional[List[str]] = None, **kwargs: Any):
        details = kwargs.pop("details", None) or {}
        details.setdefault("reasons", list(reasons or []))
        super().__init__(message, details=details, **kwargs)

    @property
    def reasons(self) -> List[str]:
        return self.details.get("reasons", [])


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class WorkflowNotFoundError(NotFoundError):
    """Workflow not found or inactive"""
    error_code = "WORKFLOW_NOT_FOUND"


class StepNotFoundError(NotFoundError):
    """Workflow step not found or inactive"""
    error_code = "STEP_NOT_FOUND"


class InstanceNotFoundError(NotFoundError):
    """Workflow instance not found"""
    error_code = "INSTANCE_NOT_FOUND"


# State Errors
class InvalidStateError(DomainError):
    """Action not valid for current instance status"""
    error_code = "INVALID_STATE"
    http_status = 400


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class ConcurrencyError(ConflictError):
    """Optimistic concurrency conflict"""
    error_code = "CONCURRENCY_CONFLICT"


# Store Errors
class StoreError(DomainError):
    """Underlying persistence call failed"""
    error_code = "STORE_ERROR"
    http_status = 503
