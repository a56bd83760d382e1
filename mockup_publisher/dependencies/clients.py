"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from mockup_publisher.clients import (
    GeminiClient,
    InMemoryCorrelationStore,
    PkceAuthorizationFlow,
    SQLiteCorrelationStore,
    SQLiteStore,
    SimpleAuthorizationFlow,
    build_etsy_flow,
    build_google_flow,
)
from mockup_publisher.clients.correlation import CorrelationStore
from mockup_publisher.clients.factory import ProviderClientFactory
from mockup_publisher.core.config import get_settings
from mockup_publisher.services import (
    ArtifactStorage,
    ContentGenerator,
    PublishPipeline,
    SessionTokenSigner,
    TemplateService,
    TokenCipherService,
    TokenStore,
)
from mockup_publisher.services.accounts import AccountService
from mockup_publisher.services.listings import ListingService


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide shared SQLite record store."""
    return SQLiteStore(_settings().storage.database_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.google.client_secret
    return TokenCipherService(
        secret=secret,
        previous_secrets=settings.security.previous_token_encryption_secrets,
    )


@lru_cache()
def get_token_store() -> TokenStore:
    return TokenStore(get_sqlite_store(), get_token_cipher_service())


@lru_cache()
def get_session_signer() -> SessionTokenSigner:
    """Provide the session signer derived from the session or Google client secret."""
    settings = _settings()
    secret = settings.security.session_secret or settings.google.client_secret
    return SessionTokenSigner(secret, ttl_seconds=settings.security.session_ttl_seconds)


@lru_cache()
def get_correlation_store() -> CorrelationStore:
    """Provide the PKCE correlation store selected by OAUTH_STATE_BACKEND."""
    settings = _settings()
    if settings.oauth.state_backend == "sqlite":
        return SQLiteCorrelationStore(settings.storage.database_path)
    return InMemoryCorrelationStore()


@lru_cache()
def get_google_flow() -> SimpleAuthorizationFlow:
    settings = _settings()
    return build_google_flow(settings.google, timeout=settings.http_timeout_seconds)


@lru_cache()
def get_etsy_flow() -> PkceAuthorizationFlow:
    settings = _settings()
    return build_etsy_flow(
        settings.etsy,
        settings.oauth,
        get_correlation_store(),
        timeout=settings.http_timeout_seconds,
    )


@lru_cache()
def get_provider_client_factory() -> ProviderClientFactory:
    """Provide the builder for per-user Drive and Etsy clients."""
    return ProviderClientFactory(
        settings=_settings(),
        token_store=get_token_store(),
        google_flow=get_google_flow(),
        etsy_flow=get_etsy_flow(),
    )


@lru_cache()
def get_gemini_client() -> GeminiClient:
    """Provide Gemini client instance."""
    return GeminiClient(_settings().gemini)


@lru_cache()
def get_template_service() -> TemplateService:
    return TemplateService(get_sqlite_store())


def get_content_generator() -> ContentGenerator:
    """Build a content generator using Gemini and the owner's templates."""
    return ContentGenerator(get_gemini_client(), get_template_service())


@lru_cache()
def get_artifact_storage() -> ArtifactStorage:
    return ArtifactStorage(_settings().storage.artifact_dir)


def get_publish_pipeline() -> PublishPipeline:
    return PublishPipeline(
        store=get_sqlite_store(),
        artifacts=get_artifact_storage(),
        etsy_settings=_settings().etsy,
    )


def get_listing_service() -> ListingService:
    return ListingService(get_sqlite_store(), get_artifact_storage())


def get_account_service() -> AccountService:
    return AccountService(
        store=get_sqlite_store(),
        token_store=get_token_store(),
        google_flow=get_google_flow(),
        etsy_flow=get_etsy_flow(),
        clients=get_provider_client_factory(),
    )


__all__ = [
    "get_account_service",
    "get_artifact_storage",
    "get_content_generator",
    "get_correlation_store",
    "get_etsy_flow",
    "get_gemini_client",
    "get_google_flow",
    "get_listing_service",
    "get_provider_client_factory",
    "get_publish_pipeline",
    "get_session_signer",
    "get_sqlite_store",
    "get_template_service",
    "get_token_cipher_service",
    "get_token_store",
]
