"""Workflow backend connection settings.

The backend serves, under ``<WORKFLOW_API_ENDPOINT>/api``:

  POST  /workflows                       create a workflow from a graph
  PATCH /workflows/{id}                  replace a workflow's graph
  GET   /workflows/{id}                  read a stored graph
  POST  /ai/generate                     AI graph source (prompt -> graph)
  GET   /integrations/{ref}/credentials  secrets for HttpCredentialResolver

Environment variables:
  WORKFLOW_API_ENDPOINT       backend origin, default http://localhost:3000
  WORKFLOW_API_KEY            bearer key sent to the backend (optional)
  WORKFLOW_TIMEOUT            request timeout in seconds, positive integer
  WORKFLOW_BUILDER_LOG_LEVEL  logging level for the CLI and service
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

DEFAULT_ENDPOINT = "http://localhost:3000"
DEFAULT_TIMEOUT = 120
_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def _parse_timeout(raw: str) -> int:
    try:
        timeout = int(raw)
    except ValueError as e:
        raise ValueError(f"WORKFLOW_TIMEOUT must be an integer number of seconds, got {raw!r}") from e
    if timeout <= 0:
        raise ValueError(f"WORKFLOW_TIMEOUT must be positive, got {timeout}")
    return timeout


@dataclass(frozen=True)
class Settings:
    """Backend settings; build with from_env() or directly in tests."""

    api_key: str = field(repr=False)
    api_endpoint: str = DEFAULT_ENDPOINT
    timeout: int = DEFAULT_TIMEOUT
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> Settings:
        """Read WORKFLOW_* variables. Raises ValueError on a bad WORKFLOW_TIMEOUT."""
        level = os.getenv("WORKFLOW_BUILDER_LOG_LEVEL", "WARNING").strip().upper()
        if level not in _LOG_LEVELS:
            logging.getLogger("workflow_builder.client").warning(
                "Unknown WORKFLOW_BUILDER_LOG_LEVEL %r, using WARNING", level,
            )
            level = "WARNING"
        return cls(
            api_key=os.getenv("WORKFLOW_API_KEY", "").strip(),
            api_endpoint=os.getenv("WORKFLOW_API_ENDPOINT", DEFAULT_ENDPOINT).strip().rstrip("/"),
            timeout=_parse_timeout(os.getenv("WORKFLOW_TIMEOUT", str(DEFAULT_TIMEOUT)).strip()),
            log_level=level,
        )

    @property
    def base_url(self) -> str:
        """Root of the backend REST API."""
        return f"{self.api_endpoint}/api"

    @property
    def headers(self) -> dict[str, str]:
        """JSON content type, plus the bearer key when one is configured."""
        if not self.api_key:
            return {"Content-Type": "application/json"}
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}
