"""
Exception taxonomy for the credential linking core.

Every failure is surfaced to the caller as one of these classes; none are
swallowed. Raising any of them inside a transaction rolls the whole
operation back.
"""

from typing import Any


class AuthLinkError(Exception):
    """
    Base exception for all credential linking errors.

    Carries a stable ``code`` (the class name by default) and structured
    ``details`` so outer layers can render it without parsing the message.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFound(AuthLinkError):
    """Unknown user, credential instance or credential method."""


class UserExists(AuthLinkError):
    """A user with the requested uid already exists."""


class DuplicateIdentity(AuthLinkError):
    """The method identifier (username, email, provider id) is already taken in that store."""


class AlreadyRegistered(AuthLinkError):
    """The user already has an instance for the method; update it instead."""


class ReferenceNotFound(AuthLinkError):
    """A link target does not exist."""


class OwnerMismatch(ReferenceNotFound):
    """A link target exists but belongs to another user."""


class MethodMismatch(AuthLinkError):
    """A credential instance was used with a method it does not belong to."""


class Disabled(AuthLinkError):
    """The operation was attempted on a disabled credential instance."""


class AuthenticationFailed(AuthLinkError):
    """The external verifier rejected the presented secret."""


class LastCredential(AuthLinkError):
    """Revoking would leave the user without any active credential."""


class InvalidField(AuthLinkError):
    """A credential attribute is not declared by the method."""


class ReferentialIntegrityViolation(AuthLinkError):
    """A user deletion was attempted while credentials still reference the user."""


class TransformationPrecondition(AuthLinkError):
    """A schema transformation is blocked by existing data or ordering."""


class InvariantViolation(AuthLinkError):
    """A schema transformation left the data model in an inconsistent state."""


class TransactionConflict(AuthLinkError):
    """A transaction kept failing on serialization conflicts after every retry."""
