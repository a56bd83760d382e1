"""Expose constructed client wrappers."""

from .correlation import InMemoryCorrelationStore, SQLiteCorrelationStore
from .gemini import GeminiClient, GeminiModelError
from .oauth import (
    AuthorizationRequest,
    PkceAuthorizationFlow,
    SimpleAuthorizationFlow,
    build_etsy_flow,
    build_google_flow,
)
from .sqlite_store import SQLiteStore

__all__ = [
    "AuthorizationRequest",
    "GeminiClient",
    "GeminiModelError",
    "InMemoryCorrelationStore",
    "PkceAuthorizationFlow",
    "SQLiteCorrelationStore",
    "SQLiteStore",
    "SimpleAuthorizationFlow",
    "build_etsy_flow",
    "build_google_flow",
]
