"""Scan configuration."""

import logging
import os

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class ScanConfig(BaseModel):
    """Credentials and limits for one scanner instance.

    Every credential is optional. A missing credential disables only the
    enrichment that needs it: GitHub falls back to the unauthenticated
    rate limit, Snyk needs both token and org id, Socket needs an API key.
    """

    github_token: str | None = None
    snyk_token: str | None = None
    snyk_org_id: str | None = None
    socket_api_key: str | None = None
    http_timeout: float = Field(default=15.0, gt=0)
    scan_timeout: float = Field(default=60.0, gt=0)

    @field_validator("github_token", "snyk_token", "snyk_org_id", "socket_api_key")
    @classmethod
    def _blank_is_unset(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @property
    def snyk_enabled(self) -> bool:
        return bool(self.snyk_token and self.snyk_org_id)

    @property
    def socket_enabled(self) -> bool:
        return bool(self.socket_api_key)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ScanConfig":
        """Build a config from environment variables.

        Reads GITHUB_TOKEN, SNYK_TOKEN, SNYK_ORG_ID, SOCKET_API_KEY,
        SAFEVIBES_HTTP_TIMEOUT and SAFEVIBES_SCAN_TIMEOUT.
        """
        env = os.environ if environ is None else environ
        values: dict = {
            "github_token": env.get("GITHUB_TOKEN"),
            "snyk_token": env.get("SNYK_TOKEN"),
            "snyk_org_id": env.get("SNYK_ORG_ID"),
            "socket_api_key": env.get("SOCKET_API_KEY"),
        }
        for key, var in (("http_timeout", "SAFEVIBES_HTTP_TIMEOUT"), ("scan_timeout", "SAFEVIBES_SCAN_TIMEOUT")):
            raw = env.get(var)
            if not raw:
                continue
            try:
                values[key] = float(raw)
            except ValueError:
                logger.warning(f"Ignoring non-numeric {var}={raw!r}")
        return cls(**values)
