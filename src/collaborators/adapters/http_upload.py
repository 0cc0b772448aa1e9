# src/collaborators/adapters/http_upload.py — v1
"""Document upload over HTTP (multipart, repeated `files` field)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from scanflow.collaborators.base import BaseUploadClient, UploadError, UploadFile
from scanflow.config.settings import MAX_UPLOAD_BATCH_SIZE

logger = logging.getLogger(__name__)


class HttpUploadClient(BaseUploadClient):
    """Upload service client backed by httpx."""

    def __init__(
        self,
        url: str,
        field_name: str = "files",
        timeout_s: float = 30.0,
        api_token: str = "",
        max_files: int = MAX_UPLOAD_BATCH_SIZE,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._field_name = field_name
        self._timeout = httpx.Timeout(timeout_s)
        self._headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        self._max_files = max_files
        self._client = client

    @property
    def max_files_per_request(self) -> int:
        return self._max_files

    async def upload(self, files: list[UploadFile]) -> dict[str, Any]:
        if not files:
            raise ValueError("upload() needs at least one file")
        if len(files) > self._max_files:
            raise ValueError(
                f"{len(files)} files exceed the limit of {self._max_files} per request"
            )

        multipart = [
            (self._field_name, (f.filename, f.content, "application/pdf"))
            for f in files
        ]
        try:
            if self._client is not None:
                response = await self._client.post(
                    self._url, files=multipart, headers=self._headers, timeout=self._timeout,
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(
                        self._url, files=multipart, headers=self._headers,
                    )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise UploadError(f"Upload request failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise UploadError(
                f"Upload response ({response.status_code}) is not JSON"
            ) from e

        logger.debug(
            "Uploaded %d file(s), status %d", len(files), response.status_code,
        )
        return body if isinstance(body, dict) else {"data": body}
