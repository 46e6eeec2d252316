"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # System Configuration
    api_v1_prefix: str = "/api/v1"
    debug: bool = False
    cors_origins: str = "http://localhost:3000,http://localhost:4173"
    session_secret: str = "dev-session-secret"  # Signs the session cookie holding the nonce

    # Supabase Configuration
    supabase_url: str = "https://test.supabase.co"
    supabase_anon_key: str = "test-anon-key"
    supabase_service_role_key: str = "test-service-role-key"
    users_table: str = "users"
    tokens_table: str = "api_tokens"

    # Sign in with Apple
    apple_client_id: str = "com.yourapp.bundleid"
    apple_issuer: str = "https://appleid.apple.com"
    apple_jwks_url: str = "https://appleid.apple.com/auth/keys"

    # Sign in with Google
    google_client_id: str = "your-client-id.apps.googleusercontent.com"
    google_issuer: str = "https://accounts.google.com"
    google_jwks_url: str = "https://www.googleapis.com/oauth2/v3/certs"

    # Identity Token Verification
    jwks_cache_ttl_seconds: int = 3600  # 1 hour
    jwt_leeway_seconds: int = 10  # Clock skew tolerance

    # Password Auth
    bcrypt_rounds: int = 12
    api_token_bytes: int = 32

    # PostHog Configuration
    posthog_api_key: str | None = None
    posthog_host: str = "https://app.posthog.com"


settings = Settings()
