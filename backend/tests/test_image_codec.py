import base64
import hashlib

import httpx
import pytest

from glowcheck.errors import ImageEncodingError
from glowcheck.services.image_codec import ImageCodec, sniff_mime_type, stable_identifier

PNG = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


@pytest.mark.asyncio
async def test_bytes_are_encoded_with_content_identifier():
    encoded = await ImageCodec().encode(PNG)

    assert encoded.mime_type == "image/png"
    assert base64.b64decode(encoded.data_b64) == PNG
    assert encoded.identifier == "sha256:" + hashlib.sha256(PNG).hexdigest()


@pytest.mark.asyncio
async def test_file_path_identifier_is_the_path(tmp_path):
    photo = tmp_path / "front.jpg"
    photo.write_bytes(b"\xff\xd8\xff\xe0jpeg")

    encoded = await ImageCodec().encode(str(photo))

    assert encoded.identifier == str(photo)
    assert encoded.mime_type == "image/jpeg"
    assert encoded.raw_bytes() == b"\xff\xd8\xff\xe0jpeg"


@pytest.mark.asyncio
async def test_data_uri_is_decoded():
    uri = "data:image/png;base64," + base64.b64encode(PNG).decode()

    encoded = await ImageCodec().encode(uri)

    assert encoded.mime_type == "image/png"
    assert encoded.identifier == stable_identifier(PNG)
    assert encoded.data_url == uri


@pytest.mark.asyncio
async def test_url_is_fetched_with_client():
    def handler(request):
        assert request.url.host == "cdn.test"
        return httpx.Response(200, content=PNG)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        encoded = await ImageCodec(client=client).encode("https://cdn.test/front.png")

    assert encoded.identifier == "https://cdn.test/front.png"
    assert encoded.raw_bytes() == PNG


@pytest.mark.asyncio
async def test_failed_download_raises_encoding_error():
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(404))
    ) as client:
        with pytest.raises(ImageEncodingError):
            await ImageCodec(client=client).encode("https://cdn.test/missing.png")


@pytest.mark.asyncio
@pytest.mark.parametrize("ref", [b"", "data:image/png;base64,", "/no/such/photo.jpg"])
async def test_unreadable_images_raise(ref):
    with pytest.raises(ImageEncodingError):
        await ImageCodec().encode(ref)


def test_unknown_signature_defaults_to_jpeg():
    assert sniff_mime_type(b"????") == "image/jpeg"
