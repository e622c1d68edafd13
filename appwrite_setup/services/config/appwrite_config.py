from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import ClassVar


@dataclass(frozen=True)
class AppwriteConfig:
    """Runtime configuration for Appwrite control-plane calls.

    `endpoint` should be the API root including scheme and version, e.g.
    "https://cloud.appwrite.io/v1".
    """

    endpoint: str
    project_id: str
    api_key: str = field(repr=False)
    _DEFAULT_DATABASE_ID: ClassVar[str] = "quran_gate_db"
    _DEFAULT_TIMEOUT_SECONDS: ClassVar[float] = 30.0
    database_id: str = _DEFAULT_DATABASE_ID
    timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS

    @staticmethod
    def _required(name: str) -> str:
        value = (os.getenv(name) or "").strip()
        if not value:
            raise ValueError(f"Missing required environment variable: {name}")
        return value

    @staticmethod
    def from_env(
        *,
        endpoint_env: str = "APPWRITE_ENDPOINT",
        project_env: str = "APPWRITE_PROJECT_ID",
        api_key_env: str = "APPWRITE_API_KEY",
        database_env: str = "APPWRITE_DATABASE_ID",
        timeout_env: str = "APPWRITE_TIMEOUT_SECONDS",
    ) -> "AppwriteConfig":
        endpoint = AppwriteConfig._required(endpoint_env)
        project_id = AppwriteConfig._required(project_env)
        api_key = AppwriteConfig._required(api_key_env)

        database_id = (os.getenv(database_env) or "").strip() or AppwriteConfig._DEFAULT_DATABASE_ID

        timeout_raw = os.getenv(timeout_env)
        timeout_seconds = AppwriteConfig._DEFAULT_TIMEOUT_SECONDS
        if timeout_raw:
            try:
                timeout_seconds = float(timeout_raw)
            except ValueError as exc:
                raise ValueError(f"Invalid {timeout_env}; must be a number") from exc
            if timeout_seconds <= 0:
                raise ValueError(f"Invalid {timeout_env}; must be greater than zero")

        return AppwriteConfig(
            endpoint=endpoint.rstrip("/"),
            project_id=project_id,
            api_key=api_key,
            database_id=database_id,
            timeout_seconds=timeout_seconds,
        )
