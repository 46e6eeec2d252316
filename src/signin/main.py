"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.sessions import SessionMiddleware

from src.signin.config import settings
from src.signin.features.identity import router as identity_router
from src.signin.features.password import router as password_router
from src.signin.services.auth import (
    IdentityTokenVerifier,
    JWKSCache,
    SignInError,
    Vendor,
    set_identity_verifiers,
)

logger = logging.getLogger(__name__)

# JWKS caches kept for cleanup on shutdown
_jwks_caches: list[JWKSCache] = []


def build_identity_verifiers() -> dict[Vendor, IdentityTokenVerifier]:
    """Create one verifier per vendor, each with its own JWKS cache."""
    vendor_settings = {
        Vendor.APPLE: (settings.apple_jwks_url, settings.apple_issuer, settings.apple_client_id),
        Vendor.GOOGLE: (
            settings.google_jwks_url,
            settings.google_issuer,
            settings.google_client_id,
        ),
    }

    verifiers = {}
    for vendor, (jwks_url, issuer, audience) in vendor_settings.items():
        cache = JWKSCache(jwks_url=jwks_url, cache_ttl=settings.jwks_cache_ttl_seconds)
        _jwks_caches.append(cache)
        verifiers[vendor] = IdentityTokenVerifier(
            vendor=vendor,
            jwks_cache=cache,
            issuer=issuer,
            audience=audience,
            leeway=settings.jwt_leeway_seconds,
        )
    return verifiers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    # Startup: keys are fetched lazily on the first token per vendor
    set_identity_verifiers(build_identity_verifiers())
    logger.info(
        "Identity verifiers initialized",
        extra={
            "vendors": [vendor.value for vendor in Vendor],
            "cache_ttl": settings.jwks_cache_ttl_seconds,
        },
    )

    yield

    # Shutdown
    while _jwks_caches:
        cache = _jwks_caches.pop()
        try:
            await cache.close()
        except Exception as e:
            logger.error(f"Error closing JWKS cache {cache.jwks_url}: {e}", exc_info=True)


app = FastAPI(
    title="Sign-in API",
    description="Sign in with Apple/Google and email/password, issuing API bearer tokens",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

origins = settings.cors_origins.split(",")
logger.info(f"Origins : {origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)


@app.exception_handler(SignInError)
async def sign_in_error_handler(request: Request, exc: SignInError) -> JSONResponse:
    """Render sign-in failures as ``{"detail": ...}`` with the error's status code."""
    logger.info(
        f"{request.method} {request.url.path} failed: {type(exc).__name__}",
        extra={"error_type": type(exc).__name__, "status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.include_router(identity_router, prefix=settings.api_v1_prefix)
app.include_router(password_router, prefix=settings.api_v1_prefix)


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""
    return HealthCheckResponse(status="healthy")
