# ABOUTME: Pytest fixtures and configuration for Upbound MCP tests
# ABOUTME: Provides shared settings, API responses, and mocked Upbound clients

import os
from datetime import UTC, datetime, timedelta
from typing import AsyncIterator
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest
from pydantic import SecretStr

from upbound_mcp.config import SecuritySettings, UpboundSettings
from upbound_mcp.controlplane.cloud import CloudClient, with_proxy_endpoint, with_token
from upbound_mcp.utils.client import (
    ConfigurationResponse,
    ConfigurationsClient,
    ConfigurationStatus,
    ControlPlane,
    ControlPlaneConfiguration,
    ControlPlaneListResponse,
    ControlPlaneResponse,
    ControlPlanesClient,
    Status,
    UpboundClient,
)
from upbound_mcp.utils.safety import SafetyGuard

CTP_ID = UUID("2a5f8c3e-9a51-4c1b-8d0e-6f1f6b2f3a10")
CFG_ID = UUID("7c0d1e2f-3a4b-4c5d-8e6f-708192a3b4c5")


@pytest.fixture
def mock_security_settings() -> SecuritySettings:
    """Create permissive security settings for testing."""
    return SecuritySettings(
        read_only=False,
        disable_destructive=False,
        audit_log=None,
        mask_secrets=True,
    )


@pytest.fixture
def read_only_security_settings() -> SecuritySettings:
    """Create read-only security settings for testing."""
    return SecuritySettings(
        read_only=True,
        disable_destructive=True,
        audit_log=None,
        mask_secrets=True,
    )


@pytest.fixture
def mock_settings(mock_security_settings: SecuritySettings) -> UpboundSettings:
    """Create Upbound settings for testing."""
    return UpboundSettings(
        account="acme",
        token=SecretStr("test-token"),
        api_endpoint="https://api.upbound.example.com",
        proxy_endpoint="https://proxy.upbound.example.com/v1/controlPlanes",
        security=mock_security_settings,
    )


@pytest.fixture
def safety_guard(mock_security_settings: SecuritySettings) -> SafetyGuard:
    return SafetyGuard(mock_security_settings)


@pytest.fixture
def read_only_safety_guard(read_only_security_settings: SecuritySettings) -> SafetyGuard:
    return SafetyGuard(read_only_security_settings)


@pytest.fixture
def ready_control_plane() -> ControlPlaneResponse:
    """A ready control plane with a ready configuration, created two hours ago."""
    return ControlPlaneResponse(
        control_plane=ControlPlane(
            id=CTP_ID,
            name="prod-east",
            description="production",
            created_at=datetime.now(UTC) - timedelta(hours=2),
            configuration=ControlPlaneConfiguration(
                id=CFG_ID,
                name="platform-ref-aws",
                status=ConfigurationStatus.READY,
            ),
        ),
        status=Status.READY,
        permission="owner",
    )


@pytest.fixture
def provisioning_control_plane() -> ControlPlaneResponse:
    """A control plane still being created, without configuration or timestamp."""
    return ControlPlaneResponse(
        control_plane=ControlPlane(id=CTP_ID, name="staging"),
        status=Status.PROVISIONING,
        permission="owner",
    )


@pytest.fixture
def mock_ctp_api(ready_control_plane: ControlPlaneResponse) -> AsyncMock:
    """Mock control plane API returning the ready control plane."""
    api = AsyncMock(spec=ControlPlanesClient)
    api.get.return_value = ready_control_plane
    api.create.return_value = ready_control_plane
    api.delete.return_value = None
    api.list.return_value = ControlPlaneListResponse(
        control_planes=[ready_control_plane], count=1, page=1, size=100
    )
    return api


@pytest.fixture
def mock_cfg_getter() -> AsyncMock:
    """Mock configuration lookup returning platform-ref-aws."""
    getter = AsyncMock(spec=ConfigurationsClient)
    getter.get.return_value = ConfigurationResponse(id=CFG_ID, name="platform-ref-aws")
    return getter


@pytest.fixture
def cloud_client(mock_ctp_api: AsyncMock, mock_cfg_getter: AsyncMock) -> CloudClient:
    """Control plane adapter wired to the mocked APIs."""
    return CloudClient(
        mock_ctp_api,
        mock_cfg_getter,
        "acme",
        with_token("test-token"),
        with_proxy_endpoint("https://proxy.upbound.example.com/v1/controlPlanes"),
    )


@pytest.fixture
def mock_context() -> MagicMock:
    """Create a mock MCP context."""
    ctx = MagicMock()
    ctx.request_id = "test-request-123"
    ctx.report_progress = AsyncMock()
    return ctx


# Integration test fixtures


@pytest.fixture
async def live_upbound_client() -> AsyncIterator[UpboundClient | None]:
    """Live Upbound client when UP_ACCOUNT and UP_TOKEN are set."""
    if not os.environ.get("UP_ACCOUNT") or not os.environ.get("UP_TOKEN"):
        yield None
        return

    async with UpboundClient(UpboundSettings()) as client:
        yield client
