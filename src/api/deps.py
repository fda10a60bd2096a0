import os
from functools import lru_cache
from pathlib import Path

from fastapi import HTTPException, Request, status

from src.core.strings import get_strings, language_from_header
from src.services.context import AppContext


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.rules_path = Path(os.environ.get("SUBSCRIBE_RULES", self.base_dir / "rules.yaml"))


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Context ---
def get_context(request: Request) -> AppContext:
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return ctx


# --- Request helpers ---
def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For entry, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown-ip"


def get_language(request: Request, ctx: AppContext) -> str:
    return language_from_header(request.headers.get("Accept-Language"), ctx.rules.default_locale)


def get_ui_strings(lang: str, ctx: AppContext) -> dict[str, dict[str, str]]:
    return get_strings(lang, ctx.rules.ui_strings)
