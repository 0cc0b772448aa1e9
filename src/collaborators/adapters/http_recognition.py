# src/collaborators/adapters/http_recognition.py — v1
"""Barcode recognition over HTTP.

POSTs the document as multipart form data and reads `data.barcode` from the
JSON answer.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from scanflow.collaborators.base import (
    BaseRecognitionClient,
    RecognitionError,
    RecognitionResponseError,
)

logger = logging.getLogger(__name__)


class HttpRecognitionClient(BaseRecognitionClient):
    """Recognition service client backed by httpx."""

    def __init__(
        self,
        url: str,
        field_name: str = "file",
        timeout_s: float = 30.0,
        api_token: str = "",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._field_name = field_name
        self._timeout = httpx.Timeout(timeout_s)
        self._headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        self._client = client

    async def recognize(self, filename: str, content: bytes) -> str:
        files = {self._field_name: (filename, content, "application/pdf")}
        try:
            if self._client is not None:
                response = await self._client.post(
                    self._url, files=files, headers=self._headers, timeout=self._timeout,
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(
                        self._url, files=files, headers=self._headers,
                    )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RecognitionError(f"Recognition request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise RecognitionResponseError("Recognition response is not JSON") from e

        return parse_barcode(payload)


def parse_barcode(payload: Any) -> str:
    """Extract `data.barcode` from a recognition payload.

    A missing or null barcode counts as empty; anything that is not the
    expected shape is a malformed response.
    """
    if not isinstance(payload, dict):
        raise RecognitionResponseError("Recognition response is not an object")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise RecognitionResponseError("Recognition response has no 'data' object")
    barcode = data.get("barcode")
    if barcode is None:
        return ""
    if not isinstance(barcode, str):
        raise RecognitionResponseError(
            f"Recognition barcode is {type(barcode).__name__}, expected string"
        )
    return barcode
