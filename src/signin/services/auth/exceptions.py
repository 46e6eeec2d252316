"""Custom exceptions for identity verification, provisioning and token lookup."""


class SignInError(Exception):
    """Base exception for every failure surfaced to the caller of an auth endpoint."""

    status_code: int = 400
    default_detail: str = "Bad request"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class VerificationError(SignInError):
    """Raised when a third-party identity token fails verification."""

    default_detail = "Invalid identity token"


class InvalidSignature(VerificationError):
    """Raised when the token is malformed or its signature does not verify."""

    default_detail = "Invalid identity token signature"


class TokenExpired(VerificationError):
    """Raised when the token's exp claim is in the past."""

    default_detail = "Identity token has expired"


class InvalidIssuer(VerificationError):
    """Raised when the iss claim does not match the vendor issuer."""

    default_detail = "Invalid issuer"


class InvalidAudience(VerificationError):
    """Raised when the aud claim is not this application's client identifier."""

    default_detail = "Invalid audience"


class InvalidNonce(VerificationError):
    """Raised when the nonce claim does not match the nonce stored in the session."""

    default_detail = "Invalid nonce"


class KeySetUnavailable(SignInError):
    """Raised when the vendor's JWK set cannot be fetched."""

    status_code = 503
    default_detail = "Identity provider keys are unavailable"


class MissingEmail(SignInError):
    """Raised when registration is attempted without an email address."""

    default_detail = "An email address is required to register"


class AlreadyRegistered(SignInError):
    """Raised when the identity is already linked to a user."""

    default_detail = "User is already registered"


class RegistrationRejected(SignInError):
    """Raised by registration hooks that refuse to build a user."""

    default_detail = "Registration rejected"


class Unauthorized(SignInError):
    """Raised when no active user matches the credentials presented."""

    status_code = 401
    default_detail = "Unauthorized"
