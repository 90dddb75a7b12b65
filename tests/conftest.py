from __future__ import annotations

import httpx
import pytest

from config import Settings
from security import TokenExchanger
from security.models import ConfidentialClient
from tooling import DevOpsTools, create_downstream_client
from tests.helpers import FakeDevOps, FakeIdentityProvider, build_settings


@pytest.fixture()
def settings() -> Settings:
    return build_settings()


@pytest.fixture()
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def devops() -> FakeDevOps:
    return FakeDevOps()


@pytest.fixture()
def exchanger(settings: Settings, identity_provider: FakeIdentityProvider) -> TokenExchanger:
    return TokenExchanger(
        ConfidentialClient.from_identity(settings.identity),
        settings.downstream_scope,
        client=httpx.AsyncClient(transport=httpx.MockTransport(identity_provider)),
        clock=lambda: 1_000.0,
    )


@pytest.fixture()
def tools(settings: Settings, exchanger: TokenExchanger, devops: FakeDevOps) -> DevOpsTools:
    client = create_downstream_client(
        settings, exchanger, transport=httpx.MockTransport(devops)
    )
    return DevOpsTools(client)
