"""Turn photo references into base64 payloads ready for transport."""

from __future__ import annotations

import asyncio
import base64
import binascii
import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from glowcheck.errors import ImageEncodingError
from glowcheck.models.analysis import ImageRef

_SIGNATURES = (
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF8", "image/gif"),
    (b"RIFF", "image/webp"),
)


@dataclass(frozen=True)
class EncodedImage:
    data_b64: str
    mime_type: str
    identifier: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data_b64}"

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data_b64)


def sniff_mime_type(data: bytes) -> str:
    for signature, mime_type in _SIGNATURES:
        if data.startswith(signature):
            return mime_type
    return "image/jpeg"


def stable_identifier(ref: ImageRef) -> str:
    """Identifier that stays the same for the same image reference."""
    if isinstance(ref, bytes):
        return f"sha256:{hashlib.sha256(ref).hexdigest()}"
    return str(ref)


class ImageCodec:
    """Encodes bytes, file paths, ``data:`` URIs and http(s) URLs."""

    def __init__(
        self,
        *,
        timeout_s: float = 20.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._client = client

    async def encode(self, ref: ImageRef) -> EncodedImage:
        identifier = stable_identifier(ref)
        if isinstance(ref, bytes):
            data = ref
        elif isinstance(ref, str) and ref.startswith("data:"):
            return self._from_data_uri(ref)
        elif isinstance(ref, str) and ref.startswith(("http://", "https://")):
            data = await self._fetch(ref)
        else:
            data = await self._read_file(Path(ref))

        if not data:
            raise ImageEncodingError(f"Image {identifier[:80]} is empty.")
        return EncodedImage(
            data_b64=base64.b64encode(data).decode("ascii"),
            mime_type=sniff_mime_type(data),
            identifier=identifier,
        )

    def _from_data_uri(self, uri: str) -> EncodedImage:
        header, _, payload = uri.partition(",")
        if not payload or ";base64" not in header:
            raise ImageEncodingError("Only base64 data URIs are supported.")
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ImageEncodingError("Data URI payload is not valid base64.") from exc
        if not data:
            raise ImageEncodingError("Data URI payload is empty.")
        mime_type = header[len("data:"):].split(";", 1)[0] or sniff_mime_type(data)
        return EncodedImage(
            data_b64=base64.b64encode(data).decode("ascii"),
            mime_type=mime_type,
            identifier=stable_identifier(data),
        )

    async def _read_file(self, path: Path) -> bytes:
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise ImageEncodingError(f"Could not read image file {path}: {exc}") from exc

    async def _fetch(self, url: str) -> bytes:
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self._timeout_s)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, timeout=self._timeout_s)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ImageEncodingError(f"Could not download image {url}: {exc}") from exc
        return response.content
