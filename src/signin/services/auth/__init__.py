"""Third-party identity verification, user provisioning and API token issuance."""

from src.signin.services.auth.dependencies import (
    get_current_user,
    get_identity_verifiers,
    set_identity_verifiers,
    set_registration_hooks,
)
from src.signin.services.auth.exceptions import (
    AlreadyRegistered,
    InvalidAudience,
    InvalidIssuer,
    InvalidNonce,
    InvalidSignature,
    KeySetUnavailable,
    MissingEmail,
    RegistrationRejected,
    SignInError,
    TokenExpired,
    Unauthorized,
    VerificationError,
)
from src.signin.services.auth.flow import ThirdPartyAuthService
from src.signin.services.auth.jwks import JWKSCache
from src.signin.services.auth.models import Vendor, VerifiedIdentity
from src.signin.services.auth.verifier import IdentityTokenVerifier

__all__ = [
    "get_current_user",
    "get_identity_verifiers",
    "set_identity_verifiers",
    "set_registration_hooks",
    "JWKSCache",
    "IdentityTokenVerifier",
    "ThirdPartyAuthService",
    "Vendor",
    "VerifiedIdentity",
    "SignInError",
    "VerificationError",
    "InvalidSignature",
    "TokenExpired",
    "InvalidIssuer",
    "InvalidAudience",
    "InvalidNonce",
    "KeySetUnavailable",
    "MissingEmail",
    "AlreadyRegistered",
    "RegistrationRejected",
    "Unauthorized",
]
