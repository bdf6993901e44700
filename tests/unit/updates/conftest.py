import io
import zipfile
from collections.abc import Callable

import httpx
import pytest

VERSION_URL = "https://example.invalid/api/links"
DOWNLOAD_URL = "https://example.invalid/bin-linux/bedrock-server-1.21.3.01.zip"

type LinksFactory = Callable[..., dict[str, object]]
type ClientFactory = Callable[..., httpx.AsyncClient]


def _links(url: str = DOWNLOAD_URL, download_type: str = "serverBedrockLinux") -> dict[str, object]:
    return {
        "result": {
            "links": [
                {
                    "downloadType": "serverBedrockWindows",
                    "downloadUrl": "https://example.invalid/bin-win/bedrock-server-0.0.0.1.zip",
                },
                {"downloadType": download_type, "downloadUrl": url},
            ]
        }
    }


def _zip(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def version_url() -> str:
    return VERSION_URL


@pytest.fixture
def download_url() -> str:
    return DOWNLOAD_URL


@pytest.fixture
def links_payload() -> LinksFactory:
    """Build a download-links document."""
    return _links


@pytest.fixture
def server_zip() -> bytes:
    return _zip(
        {
            "bedrock_server": b"new binary",
            "behavior_packs/pack.json": b'{"version": 2}',
        }
    )


@pytest.fixture
def mock_client(server_zip: bytes) -> ClientFactory:
    """Build an AsyncClient answering the links endpoint and the archive."""

    def factory(
        payload: object | None = None,
        *,
        status_code: int = 200,
        archive: bytes | None = None,
        requests: list[httpx.Request] | None = None,
    ) -> httpx.AsyncClient:
        body = _links() if payload is None else payload
        content = server_zip if archive is None else archive

        def handler(request: httpx.Request) -> httpx.Response:
            if requests is not None:
                requests.append(request)
            if str(request.url) == VERSION_URL:
                return httpx.Response(status_code, json=body)
            return httpx.Response(200, content=content)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
