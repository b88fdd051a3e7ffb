import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from trajectplan.core.exceptions import StorageError
from trajectplan.services.storage.storage_service import StorageService


@pytest.fixture
def storage_service():
    return StorageService(
        url="https://test.supabase.co",
        service_role_key="service-key",
        bucket="documents",
        timeout=5,
    )


def _response(status_code: int, content: bytes = b"", text: str = ""):
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.text = text
    return response


@pytest.mark.asyncio
async def test_download_success(storage_service):
    with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = _response(200, content=b"%PDF-1.4 data")

        data = await storage_service.download("abc/x.pdf")

        assert data == b"%PDF-1.4 data"
        args, kwargs = mock_get.call_args
        assert args[0] == "https://test.supabase.co/storage/v1/object/documents/abc/x.pdf"
        assert kwargs["headers"]["Authorization"] == "Bearer service-key"


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code,text", [(404, "Not Found"), (400, '{"error":"not_found","message":"Object not found"}')])
async def test_download_missing_object_returns_none(storage_service, status_code, text):
    with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = _response(status_code, text=text)

        assert await storage_service.download("abc/missing.pdf") is None


@pytest.mark.asyncio
async def test_download_server_error_raises(storage_service):
    with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = _response(500, text="Internal error")

        with pytest.raises(StorageError):
            await storage_service.download("abc/x.pdf")


@pytest.mark.asyncio
async def test_download_transport_error_raises(storage_service):
    with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
        mock_get.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(StorageError):
            await storage_service.download("abc/x.pdf")
