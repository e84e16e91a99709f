"""
Error taxonomy for the package registry.

Every failure the core can report is one of five kinds. Entity-returning
operations raise these exceptions; the publication coordinator and the
upload recorder return them inside a PublishResult instead.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


class RegistryError(Exception):
    """Base exception for all registry errors."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response."""
        return {
            "error": self.kind,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(RegistryError):
    """Target entity is absent."""

    kind = "not_found"
    status_code = 404

    def __init__(self, resource: str, identifier: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{resource} not found: {identifier}", details=details)
        self.resource = resource
        self.identifier = identifier


class ConflictError(RegistryError):
    """Uniqueness violation or a concurrent duplicate create."""

    kind = "conflict"
    status_code = 409


class NotAuthorizedError(RegistryError):
    """Credential does not own the target."""

    kind = "not_authorized"
    status_code = 403

    def __init__(self, message: str = "Not Authorized", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class InvalidError(RegistryError):
    """Malformed input, e.g. a name whose canonical key is empty."""

    kind = "invalid"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.field = field


class UnavailableError(RegistryError):
    """The store or an external service could not be reached."""

    kind = "unavailable"
    status_code = 503


# Outcomes of a successful publish
CREATED = "created"
UPDATED = "updated"
RECORDED = "recorded"
SKIPPED = "skipped"


@dataclass(frozen=True)
class PublishResult:
    """Tagged result returned to the transport layer."""

    ok: bool
    message: str
    outcome: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, outcome: str) -> "PublishResult":
        return cls(ok=True, message="Success", outcome=outcome)

    @classmethod
    def failure(cls, err: RegistryError) -> "PublishResult":
        return cls(ok=False, message=err.message, error=err.kind)

    @property
    def status_code(self) -> int:
        if self.ok:
            return 200
        for error_cls in (NotFoundError, ConflictError, NotAuthorizedError, InvalidError, UnavailableError):
            if error_cls.kind == self.error:
                return error_cls.status_code
        return 500

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "msg": self.message,
            "outcome": self.outcome,
            "error": self.error,
        }
