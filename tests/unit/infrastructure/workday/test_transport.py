import asyncio

import httpx
import pytest

from workdocs.domain.errors import TransportError
from workdocs.infrastructure.workday import transport

URL = "https://api.example.test/service"


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_successful_response_is_returned():
    client = client_for(lambda request: httpx.Response(200, text="ok"))

    response = await transport.post(client, URL, content=b"payload")

    assert response.text == "ok"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 429, 500, 503])
async def test_error_status_is_carried(status):
    client = client_for(lambda request: httpx.Response(status))

    with pytest.raises(TransportError) as exc_info:
        await transport.post(client, URL)
    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_network_failure_has_no_status():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as exc_info:
        await transport.post(client_for(refuse), URL)
    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_wall_clock_timeout():
    async def hang(request):
        await asyncio.sleep(1)
        return httpx.Response(200)

    with pytest.raises(TransportError, match="timed out") as exc_info:
        await transport.post(client_for(hang), URL, timeout=0.05)
    assert exc_info.value.status_code is None
