# Overview: Error taxonomy shared by services, the access guard and routes.

"""
Every failure a client can correct or should be told about is one of these.
Routes render them with `to_response()`; anything else is an opaque 500.

InvalidCredentials and AccountDeactivated render identically so a login
response never reveals whether an email is registered. The distinction is
kept for logging only.
"""

from __future__ import annotations


class ProvisioningError(Exception):
    """Base class for errors surfaced verbatim to the client."""

    status_code = 500
    code = "InternalError"
    public_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    def to_response(self) -> tuple[dict, int]:
        return {"error": self.message, "code": self.code}, self.status_code


class ValidationFailed(ProvisioningError):
    """400-level input problem, with one entry per failing field."""

    status_code = 400
    code = "ValidationFailed"
    public_message = "Validation failed"

    def __init__(self, errors: list[dict] | None = None, message: str | None = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, param: str, msg: str) -> "ValidationFailed":
        return cls([{"msg": msg, "param": param}])

    def to_response(self) -> tuple[dict, int]:
        body, status = super().to_response()
        body["errors"] = self.errors
        return body, status


class ConsentRequired(ValidationFailed):
    """A mandatory legal consent was not explicitly accepted."""

    code = "ConsentRequired"

    def __init__(self, consent: str, msg: str):
        super().__init__([{"msg": msg, "param": consent}])
        self.consent = consent


class MissingRequiredFields(ProvisioningError):
    status_code = 400
    code = "MissingRequiredFields"
    public_message = "Missing required fields"

    def __init__(self, fields: list[str]):
        super().__init__(f"Missing required fields: {', '.join(fields)}")
        self.fields = fields

    def to_response(self) -> tuple[dict, int]:
        body, status = super().to_response()
        body["fields"] = self.fields
        return body, status


class EmailAlreadyRegistered(ProvisioningError):
    status_code = 409
    code = "EmailAlreadyRegistered"
    public_message = "Email already registered"


class SlugUnavailable(ProvisioningError):
    status_code = 409
    code = "SlugUnavailable"
    public_message = "Store name is already taken"


class StoreAlreadyOwned(ProvisioningError):
    status_code = 409
    code = "StoreAlreadyOwned"
    public_message = "This account already owns a store"


class InvalidCredentials(ProvisioningError):
    status_code = 401
    code = "InvalidCredentials"
    public_message = "Invalid credentials"


class AccountDeactivated(InvalidCredentials):
    # Same response as InvalidCredentials on purpose
    code = "InvalidCredentials"


class Unauthorized(ProvisioningError):
    status_code = 401
    code = "Unauthorized"
    public_message = "Unauthorized - Invalid token"


class TokenMalformed(Unauthorized):
    code = "TokenMalformed"
    public_message = "Unauthorized - Invalid token"


class TokenExpired(Unauthorized):
    code = "TokenExpired"
    public_message = "Unauthorized - Token expired"


class UserNotFound(ProvisioningError):
    status_code = 404
    code = "UserNotFound"
    public_message = "User not found"


class StoreNotFound(ProvisioningError):
    status_code = 404
    code = "StoreNotFound"
    public_message = "Store not found"


class OAuthNotConfigured(ProvisioningError):
    status_code = 501
    code = "OAuthNotConfigured"
    public_message = "OAuth provider is not configured"


class OAuthFailed(ProvisioningError):
    """Provider exchange failed; callbacks turn this into a redirect."""

    status_code = 502
    code = "OAuthFailed"
    public_message = "OAuth failed"
