"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_account_service,
    get_artifact_storage,
    get_content_generator,
    get_correlation_store,
    get_etsy_flow,
    get_gemini_client,
    get_google_flow,
    get_listing_service,
    get_provider_client_factory,
    get_publish_pipeline,
    get_session_signer,
    get_sqlite_store,
    get_template_service,
    get_token_cipher_service,
    get_token_store,
)
from .config import SettingsDependency, get_app_settings
from .session import get_current_user, get_optional_user

__all__ = [
    "SettingsDependency",
    "get_account_service",
    "get_app_settings",
    "get_artifact_storage",
    "get_content_generator",
    "get_correlation_store",
    "get_current_user",
    "get_etsy_flow",
    "get_gemini_client",
    "get_google_flow",
    "get_listing_service",
    "get_optional_user",
    "get_provider_client_factory",
    "get_publish_pipeline",
    "get_session_signer",
    "get_sqlite_store",
    "get_template_service",
    "get_token_cipher_service",
    "get_token_store",
]
