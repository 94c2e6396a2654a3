# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
OAuth usage strategy.

Reads the access token the CLI caches after login and asks the usage
endpoint directly. Cheaper than driving a terminal, but it depends on the
CLI's private credential layout, so it is an optional strategy.

API Details:
- Endpoint: GET https://api.anthropic.com/api/oauth/usage
- Auth: Authorization: Bearer <claudeAiOauth.accessToken>
- Header: anthropic-beta: oauth-2025-04-20
- Response: {"five_hour": {"utilization": float, "resets_at": str},
             "seven_day": {"utilization": float, "resets_at": str}, ...}

Token sources, in order:
    <config_dir>/.credentials.json
    macOS keychain item "Claude Code-credentials"
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ..core.constants import (
    DEFAULT_ACQUIRE_TIMEOUT,
    KEYCHAIN_SERVICE,
    OAUTH_BETA_HEADER,
    OAUTH_CREDENTIALS_FILE,
    OAUTH_USAGE_ENDPOINT,
)
from ..core.errors import CredentialsNotFoundError, UsageEndpointError
from ..core.types import UsageFields

lib_logger = logging.getLogger("usage_monitor")


def _token_from_credentials(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    oauth = data.get("claudeAiOauth")
    if not isinstance(oauth, dict):
        return None
    token = oauth.get("accessToken")
    return token if isinstance(token, str) and token else None


def _utilization_to_pct(entry: Any) -> int:
    if not isinstance(entry, dict):
        return 0
    value = entry.get("utilization")
    if value is None:
        return 0
    try:
        return max(0, min(100, int(round(float(value)))))
    except (TypeError, ValueError):
        return 0


class OAuthUsageFetcher:
    """Acquire usage from the OAuth usage endpoint."""

    name = "oauth"

    def __init__(
        self,
        endpoint: str = OAUTH_USAGE_ENDPOINT,
        timeout: float = DEFAULT_ACQUIRE_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        use_keychain: Optional[bool] = None,
    ):
        self._endpoint = endpoint
        self._timeout = timeout
        self._client = client
        self._use_keychain = (
            sys.platform == "darwin" if use_keychain is None else use_keychain
        )

    # =========================================================================
    # TOKEN LOOKUP
    # =========================================================================

    def _read_credentials_file(self, config_dir: Optional[str]) -> Optional[str]:
        base = Path(config_dir) if config_dir else Path.home() / ".claude"
        path = base / OAUTH_CREDENTIALS_FILE
        if not path.is_file():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return _token_from_credentials(json.load(f))
        except (json.JSONDecodeError, OSError) as e:
            lib_logger.warning(f"Failed to read {path}: {e}")
            return None

    async def _read_keychain(self) -> Optional[str]:
        try:
            proc = await asyncio.create_subprocess_exec(
                "security",
                "find-generic-password",
                "-s",
                KEYCHAIN_SERVICE,
                "-w",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=5)
        except (OSError, asyncio.TimeoutError) as e:
            lib_logger.debug(f"Keychain lookup failed: {e}")
            return None
        if proc.returncode != 0:
            return None
        try:
            return _token_from_credentials(json.loads(stdout.decode().strip()))
        except json.JSONDecodeError:
            return None

    async def get_access_token(self, config_dir: Optional[str]) -> str:
        token = self._read_credentials_file(config_dir)
        if token is None and self._use_keychain:
            token = await self._read_keychain()
        if token is None:
            raise CredentialsNotFoundError(
                f"No OAuth credentials found for {config_dir or '~/.claude'}"
            )
        return token

    # =========================================================================
    # USAGE API
    # =========================================================================

    @staticmethod
    def parse_usage_response(data: Dict[str, Any]) -> UsageFields:
        """Map the endpoint's windows onto session/weekly fields."""
        five_hour = data.get("five_hour")
        seven_day = data.get("seven_day")
        if not isinstance(five_hour, dict) and not isinstance(seven_day, dict):
            raise UsageEndpointError("Usage response has no five_hour/seven_day data")
        return UsageFields(
            session_pct=_utilization_to_pct(five_hour),
            session_reset=(five_hour or {}).get("resets_at") or "",
            weekly_pct=_utilization_to_pct(seven_day),
            weekly_reset=(seven_day or {}).get("resets_at") or "",
        )

    async def acquire(
        self, config_dir: Optional[str], timeout: Optional[float] = None
    ) -> UsageFields:
        token = await self.get_access_token(config_dir)
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {token}",
            "anthropic-beta": OAUTH_BETA_HEADER,
        }
        request_timeout = timeout or self._timeout

        try:
            if self._client is not None:
                response = await self._client.get(
                    self._endpoint, headers=headers, timeout=request_timeout
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(
                        self._endpoint, headers=headers, timeout=request_timeout
                    )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (401, 403):
                lib_logger.warning(
                    f"OAuth usage request rejected (HTTP {status}). "
                    "Log in again with the CLI to refresh the token"
                )
            raise UsageEndpointError(f"HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            raise UsageEndpointError(f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise UsageEndpointError(f"Invalid JSON from usage endpoint: {e}") from e

        if not isinstance(data, dict):
            raise UsageEndpointError("Usage response is not an object")
        return self.parse_usage_response(data)
