"""
Settings dependency plus the small derivations routes make from it.
"""

from typing import Any, Optional

from fastapi import Depends

from mockup_publisher.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning the process-wide settings object."""
    return get_settings()


def frontend_redirect_url(settings: AppSettings, path: str) -> Optional[str]:
    """Absolute front-end URL for ``path``, or None when no front-end is configured."""
    if not settings.frontend_base_url:
        return None
    return f"{str(settings.frontend_base_url).rstrip('/')}/{path.lstrip('/')}"


def session_cookie_options(settings: AppSettings) -> dict[str, Any]:
    # Browsers drop Secure cookies over plain http, so only production sets it.
    return {
        "max_age": settings.security.session_ttl_seconds,
        "httponly": True,
        "samesite": "lax",
        "secure": settings.environment == "production",
    }


SettingsDependency = Depends(get_app_settings)

__all__ = [
    "SettingsDependency",
    "frontend_redirect_url",
    "get_app_settings",
    "session_cookie_options",
]
