"""자격 증명 저장 서비스 테스트"""
import pytest

from market_import.core.entities.connection import ConnectionStatus, Marketplace
from market_import.core.exceptions import ValidationError
from market_import.services.credential_service import CredentialService


@pytest.fixture
def service(oauth_client, repository, clock):
    return CredentialService(oauth_client, repository, clock, base_delay=0.5)


async def test_save_creates_connected_connection(service, repository):
    result = await service.save_credentials("user-9", "AliExpress", {"appKey": "k", "appSecret": "s"})

    assert result["connectionStatus"] == "connected"
    stored = await repository.find_connection("user-9", Marketplace.ALIEXPRESS)
    assert stored.id == result["connectionId"]
    assert stored.settings == {"appKey": "k", "appSecret": "s"}
    assert stored.is_active


async def test_save_merges_into_existing_connection(service, make_connection, repository):
    await make_connection(settings={"markup_value": 15})

    result = await service.save_credentials("user-1", "mercadolivre", {"clientId": "id"})

    assert result["connectionId"] == "conn-1"
    stored = await repository.get_connection("conn-1")
    assert stored.settings == {"markup_value": 15, "clientId": "id"}
    assert stored.status == ConnectionStatus.CONNECTED


async def test_save_keeps_error_status_with_stale_tokens(service, make_connection, repository):
    await make_connection(status=ConnectionStatus.ERROR)

    result = await service.save_credentials("user-1", "mercadolivre", {"clientId": "id"})

    assert result["connectionStatus"] == "error"
    stored = await repository.get_connection("conn-1")
    assert stored.status == ConnectionStatus.ERROR
    assert stored.refresh_token == "refresh-1"


async def test_save_error_connection_without_tokens_reconnects(service, make_connection, repository):
    await make_connection(status=ConnectionStatus.ERROR, access_token=None, refresh_token=None)

    await service.save_credentials("user-1", "mercadolivre", {"clientId": "id"})

    assert (await repository.get_connection("conn-1")).status == ConnectionStatus.CONNECTED


async def test_save_requires_credentials(service):
    with pytest.raises(ValidationError):
        await service.save_credentials("user-1", "amazon", {})
