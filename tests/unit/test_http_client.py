import pytest
import pytest_asyncio

from authcore.infrastructure.http import client as http_client_mod


@pytest_asyncio.fixture(autouse=True)
async def reset_http_client():
    if http_client_mod._client is not None:
        await http_client_mod.close_http_client()
    yield
    if http_client_mod._client is not None:
        await http_client_mod.close_http_client()


@pytest.mark.asyncio
async def test_get_before_open_raises():
    with pytest.raises(RuntimeError):
        http_client_mod.get_http_client()


@pytest.mark.asyncio
async def test_open_is_shared_and_uses_given_timeout():
    c1 = await http_client_mod.open_http_client(timeout=5.0)
    c2 = await http_client_mod.open_http_client()

    assert c1 is c2
    assert http_client_mod.get_http_client() is c1
    assert float(c1.timeout.read) == pytest.approx(5.0)


@pytest.mark.asyncio
async def test_close_is_idempotent_and_reopen_builds_new_client():
    c1 = await http_client_mod.open_http_client()

    await http_client_mod.close_http_client()
    await http_client_mod.close_http_client()
    assert c1.is_closed
    assert http_client_mod._client is None

    c2 = await http_client_mod.open_http_client()
    assert c2 is not c1 and not c2.is_closed


@pytest.mark.asyncio
async def test_client_identifies_itself():
    client = await http_client_mod.open_http_client()

    assert client.headers["User-Agent"] == http_client_mod.USER_AGENT
