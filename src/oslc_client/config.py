from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .client import OSLCClient
from .transport import DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class OSLCSettings:
    server_url: str
    username: str
    password: str
    configuration_context: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __repr__(self) -> str:
        return (
            f"OSLCSettings(server_url={self.server_url!r}, username={self.username!r}, "
            f"password='***', configuration_context={self.configuration_context!r}, "
            f"timeout_seconds={self.timeout_seconds!r})"
        )


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_env_config(*, use_dotenv: bool = True) -> OSLCSettings:
    """Load OSLC server settings from environment (optional .env)."""
    if use_dotenv:
        load_dotenv()
    return OSLCSettings(
        server_url=os.getenv("OSLC_SERVER_URL", "").strip(),
        username=os.getenv("OSLC_USERNAME", "").strip(),
        password=os.getenv("OSLC_PASSWORD", ""),
        configuration_context=os.getenv("OSLC_CONFIGURATION_CONTEXT", "").strip() or None,
        timeout_seconds=_get_float_env("OSLC_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
    )


def create_client_from_env(*, use_dotenv: bool = True, **kwargs) -> OSLCClient:
    """Create an OSLCClient from environment variables."""
    settings = load_env_config(use_dotenv=use_dotenv)
    if not settings.username or not settings.password:
        raise ValueError("Missing OSLC_USERNAME or OSLC_PASSWORD in environment.")
    kwargs.setdefault("configuration_context", settings.configuration_context)
    kwargs.setdefault("timeout_seconds", settings.timeout_seconds)
    return OSLCClient(username=settings.username, password=settings.password, **kwargs)


__all__ = ["OSLCSettings", "load_env_config", "create_client_from_env"]
