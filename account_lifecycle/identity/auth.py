"""
===============================================================================
CRC CARD — identity/auth.py
===============================================================================

Module:
    API key authentication (X-API-Key) for operator endpoints

Responsibilities:
    - Load and parse API_KEYS_CONFIG from Settings.
    - Validate keys with constant-time comparison.
    - Check scopes ("admin", "metrics", "*") per endpoint.
    - Expose FastAPI dependencies (require_scope, require_metrics_auth,
      get_admin_actor).
    - Never log a key in clear; only a truncated hash.

Collaborators:
    - crosscutting.config.get_settings
    - crosscutting.error_responses (unauthorized / forbidden)
    - crosscutting.logger

Notes:
    - With no keys configured auth is disabled (local development).
===============================================================================
"""

from __future__ import annotations

import hashlib
import hmac
import json
from functools import lru_cache
from typing import Callable

from fastapi import Header, Request
from fastapi.security import APIKeyHeader

from ..crosscutting.error_responses import forbidden, unauthorized
from ..crosscutting.logger import logger

ADMIN_SCOPE = "admin"
METRICS_SCOPE = "metrics"

_KEY_HASH_LEN: int = 12

# OpenAPI security scheme; errors are raised by the dependency itself.
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def _hash_key(key: str) -> str:
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return digest[:_KEY_HASH_LEN]


def _constant_time_compare(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def _normalize_key(key: str | None) -> str | None:
    if key is None:
        return None
    key = key.strip()
    return key or None


def _validate_config_shape(raw: object) -> dict[str, list[str]]:
    """Normalize the API keys JSON.

    Expected shape:
        {
          "ops-key": ["admin", "metrics"],
          "root-key": ["*"]
        }
    """
    if not isinstance(raw, dict):
        return {}

    cfg: dict[str, list[str]] = {}
    for k, v in raw.items():
        if not isinstance(k, str) or not k.strip():
            continue
        if not isinstance(v, list) or not all(isinstance(s, str) for s in v):
            continue
        scopes = [s.strip() for s in v if s.strip()]
        if scopes:
            cfg[k.strip()] = scopes
    return cfg


@lru_cache(maxsize=1)
def _parse_keys_config() -> dict[str, list[str]]:
    from ..crosscutting.config import get_settings

    config_str = (get_settings().api_keys_config or "").strip()
    if not config_str:
        return {}

    try:
        raw = json.loads(config_str)
    except json.JSONDecodeError as exc:
        logger.warning("Invalid API_KEYS_CONFIG (JSON)", extra={"error": str(exc)})
        return {}

    cfg = _validate_config_shape(raw)
    if not cfg:
        logger.warning("Invalid API_KEYS_CONFIG (shape)")
        return {}

    return cfg


def get_keys_config() -> dict[str, list[str]]:
    return _parse_keys_config()


def clear_keys_cache() -> None:
    """Reset cached key config and validator (tests / local reload)."""
    _parse_keys_config.cache_clear()
    _get_validator.cache_clear()


def is_auth_enabled() -> bool:
    return bool(get_keys_config())


class APIKeyValidator:
    """Pure key/scope validator, no FastAPI dependency."""

    def __init__(self, keys_config: dict[str, list[str]]):
        self._keys = keys_config

    def validate_key(self, key: str) -> bool:
        if not key:
            return False

        # Compare against every key; no early return.
        found = False
        for valid_key in self._keys.keys():
            if _constant_time_compare(key, valid_key):
                found = True
        return found

    def get_scopes(self, key: str) -> list[str]:
        for valid_key, scopes in self._keys.items():
            if _constant_time_compare(key, valid_key):
                return scopes
        return []

    def validate_scope(self, key: str, required_scope: str) -> bool:
        scopes = self.get_scopes(key)
        return required_scope in scopes or "*" in scopes


@lru_cache(maxsize=1)
def _get_validator() -> APIKeyValidator | None:
    cfg = get_keys_config()
    return APIKeyValidator(cfg) if cfg else None


def require_scope(scope: str) -> Callable:
    """FastAPI dependency: valid API key carrying `scope`.

    - No keys configured: no-op.
    - Missing key: 401.
    - Unknown key or missing scope: 403.
    """

    async def dependency(
        request: Request,
        api_key: str | None = Header(None, alias="X-API-Key"),
    ) -> None:
        keys_cfg = get_keys_config()
        if not keys_cfg:
            return None

        api_key_norm = _normalize_key(api_key)

        if not api_key_norm:
            logger.warning(
                "Auth failed: missing X-API-Key",
                extra={"path": request.url.path, "scope": scope},
            )
            raise unauthorized("Missing API key. Send the X-API-Key header.")

        validator = _get_validator()
        if not validator:
            raise unauthorized("Authentication unavailable.")

        if not validator.validate_key(api_key_norm):
            logger.warning(
                "Auth failed: invalid API key",
                extra={"key_hash": _hash_key(api_key_norm), "path": request.url.path},
            )
            raise forbidden("Invalid API key.")

        if not validator.validate_scope(api_key_norm, scope):
            logger.warning(
                "Auth failed: insufficient scope",
                extra={
                    "key_hash": _hash_key(api_key_norm),
                    "path": request.url.path,
                    "required_scope": scope,
                },
            )
            raise forbidden(f"API key lacks the required scope: {scope}")

        request.state.api_key_hash = _hash_key(api_key_norm)
        return None

    return dependency


def require_metrics_auth() -> Callable:
    """FastAPI dependency: optional auth for /metrics (METRICS_REQUIRE_AUTH)."""

    async def dependency(
        request: Request,
        api_key: str | None = Header(None, alias="X-API-Key"),
    ) -> None:
        from ..crosscutting.config import get_settings

        if not get_settings().metrics_require_auth:
            return None

        await require_scope(METRICS_SCOPE)(request, api_key)
        return None

    return dependency


def get_admin_actor(
    request: Request,
    admin_user_id: str | None = Header(None, alias="X-Admin-User-Id"),
) -> str:
    """
    Identity recorded as actor_id for admin actions.

    Prefers the explicit X-Admin-User-Id header, then the key hash set by
    require_scope, then "admin" when auth is disabled.
    """
    explicit = (admin_user_id or "").strip()
    if explicit:
        return explicit
    key_hash = getattr(request.state, "api_key_hash", None)
    if key_hash:
        return f"apikey:{key_hash}"
    return "admin"
