from __future__ import annotations

import asyncio
import json
import logging
from http import HTTPStatus
from typing import Any, Optional, Sequence
from urllib.parse import quote

import aiohttp

from appwrite_setup.services.config import AppwriteConfig


logger = logging.getLogger(__name__)


class AppwriteServiceError(RuntimeError):
    """A failed Appwrite API call.

    `status` is the HTTP status (None for transport failures) and `error_type` is the
    Appwrite error type string from the response body, e.g. "collection_already_exists"
    or "additional_resource_not_allowed".
    """

    def __init__(self, message: str, *, status: Optional[int] = None, error_type: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.error_type = error_type


class AppwriteService:
    """Minimal Appwrite control-plane client (databases + storage schema calls).

    Only the create/read calls needed for schema provisioning are implemented. Calls go
    through a shared aiohttp session owned by the caller.
    """

    _SUCCESS_STATUSES = (HTTPStatus.OK, HTTPStatus.CREATED, HTTPStatus.ACCEPTED, HTTPStatus.NO_CONTENT)

    def __init__(self, config: AppwriteConfig, *, session: aiohttp.ClientSession) -> None:
        self._config = config
        self._session = session

    @property
    def database_id(self) -> str:
        return self._config.database_id

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Appwrite-Project": self._config.project_id,
            "X-Appwrite-Key": self._config.api_key,
        }

    @staticmethod
    def _compact(body: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in body.items() if v is not None}

    @staticmethod
    def _segment(value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Path identifiers must be provided")
        return quote(value, safe="")

    def _collection_path(self, collection_id: str) -> str:
        return f"/databases/{self._segment(self._config.database_id)}/collections/{self._segment(collection_id)}"

    async def _request(
        self,
        *,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        if not path.startswith("/"):
            path = "/" + path

        url = f"{self._config.endpoint}{path}"
        data = json.dumps(body).encode("utf-8") if body is not None else None

        try:
            async with self._session.request(
                method.upper(),
                url,
                data=data,
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self._config.timeout_seconds),
            ) as resp:
                status = resp.status
                payload = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.exception("Appwrite request failed (method=%s path=%s)", method, path)
            raise AppwriteServiceError(f"Appwrite request failed (method={method} path={path})") from exc

        try:
            parsed = json.loads(payload.decode("utf-8")) if payload else {}
        except (UnicodeDecodeError, ValueError):
            parsed = {}
        if not isinstance(parsed, dict):
            parsed = {}

        if status in self._SUCCESS_STATUSES:
            return parsed

        message = parsed.get("message") or ""
        error_type = parsed.get("type")
        raise AppwriteServiceError(
            f"Appwrite {method.upper()} {path} failed: HTTP {status} {message}".strip(),
            status=status,
            error_type=error_type if isinstance(error_type, str) else None,
        )

    # -----------------
    # Collections
    # -----------------

    async def create_collection(
        self,
        *,
        collection_id: str,
        name: str,
        permissions: Sequence[str],
        document_security: bool,
        enabled: bool,
    ) -> dict[str, Any]:
        return await self._request(
            method="POST",
            path=f"/databases/{self._segment(self._config.database_id)}/collections",
            body={
                "collectionId": collection_id,
                "name": name,
                "permissions": list(permissions),
                "documentSecurity": document_security,
                "enabled": enabled,
            },
        )

    # -----------------
    # Attributes
    # -----------------

    async def create_string_attribute(
        self,
        *,
        collection_id: str,
        key: str,
        size: int,
        required: bool,
        default: Optional[str] = None,
        array: bool = False,
    ) -> dict[str, Any]:
        return await self._request(
            method="POST",
            path=f"{self._collection_path(collection_id)}/attributes/string",
            body=self._compact(
                {"key": key, "size": size, "required": required, "default": default, "array": array}
            ),
        )

    async def create_integer_attribute(
        self,
        *,
        collection_id: str,
        key: str,
        required: bool,
        min: Optional[int] = None,
        max: Optional[int] = None,
        default: Optional[int] = None,
        array: bool = False,
    ) -> dict[str, Any]:
        return await self._request(
            method="POST",
            path=f"{self._collection_path(collection_id)}/attributes/integer",
            body=self._compact(
                {"key": key, "required": required, "min": min, "max": max, "default": default, "array": array}
            ),
        )

    async def create_datetime_attribute(
        self,
        *,
        collection_id: str,
        key: str,
        required: bool,
        default: Optional[str] = None,
        array: bool = False,
    ) -> dict[str, Any]:
        return await self._request(
            method="POST",
            path=f"{self._collection_path(collection_id)}/attributes/datetime",
            body=self._compact({"key": key, "required": required, "default": default, "array": array}),
        )

    async def create_boolean_attribute(
        self,
        *,
        collection_id: str,
        key: str,
        required: bool,
        default: Optional[bool] = None,
        array: bool = False,
    ) -> dict[str, Any]:
        return await self._request(
            method="POST",
            path=f"{self._collection_path(collection_id)}/attributes/boolean",
            body=self._compact({"key": key, "required": required, "default": default, "array": array}),
        )

    async def get_attribute(self, *, collection_id: str, key: str) -> dict[str, Any]:
        """Return the attribute document, including its processing `status`."""

        return await self._request(
            method="GET",
            path=f"{self._collection_path(collection_id)}/attributes/{self._segment(key)}",
        )

    # -----------------
    # Indexes
    # -----------------

    async def create_index(
        self,
        *,
        collection_id: str,
        key: str,
        index_type: str,
        attributes: Sequence[str],
        orders: Optional[Sequence[str]] = None,
    ) -> dict[str, Any]:
        return await self._request(
            method="POST",
            path=f"{self._collection_path(collection_id)}/indexes",
            body=self._compact(
                {
                    "key": key,
                    "type": index_type,
                    "attributes": list(attributes),
                    "orders": list(orders) if orders is not None else None,
                }
            ),
        )

    # -----------------
    # Storage
    # -----------------

    async def create_bucket(
        self,
        *,
        bucket_id: str,
        name: str,
        permissions: Sequence[str],
        file_security: bool,
        enabled: bool,
        maximum_file_size: int,
        allowed_file_extensions: Sequence[str],
        compression: str,
        encryption: bool,
        antivirus: bool,
    ) -> dict[str, Any]:
        return await self._request(
            method="POST",
            path="/storage/buckets",
            body={
                "bucketId": bucket_id,
                "name": name,
                "permissions": list(permissions),
                "fileSecurity": file_security,
                "enabled": enabled,
                "maximumFileSize": maximum_file_size,
                "allowedFileExtensions": list(allowed_file_extensions),
                "compression": compression,
                "encryption": encryption,
                "antivirus": antivirus,
            },
        )
