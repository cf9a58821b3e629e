# ABOUTME: Unit tests for the Upbound Cloud control plane adapter
# ABOUTME: Tests namespace rejection, not-found mapping, create lookups, and conversion

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock
from uuid import UUID

import httpx
import pytest
import respx

from upbound_mcp.config import DEFAULT_PROXY_ENDPOINT, UpboundSettings
from upbound_mcp.controlplane import (
    NamespacedName,
    NotFoundError,
    Options,
    Response,
    UnsupportedScopeError,
    is_not_found,
)
from upbound_mcp.controlplane.cloud import (
    MAX_ITEMS,
    CloudClient,
    convert,
    format_status,
    to_bool,
    to_message,
)
from upbound_mcp.utils.client import (
    ConfigurationStatus,
    ControlPlane,
    ControlPlaneConfiguration,
    ControlPlaneCreateParameters,
    ControlPlaneListResponse,
    ControlPlaneResponse,
    Status,
    UpboundClient,
    UpboundError,
)

CTP_ID = UUID("2a5f8c3e-9a51-4c1b-8d0e-6f1f6b2f3a10")
CFG_ID = UUID("7c0d1e2f-3a4b-4c5d-8e6f-708192a3b4c5")

NAMESPACED = NamespacedName(name="prod-east", namespace="team-a")


def make_response(
    status: str = Status.READY,
    cfg_name: str | None = None,
    cfg_status: str = "",
    created_at: datetime | None = None,
    with_configuration: bool = False,
) -> ControlPlaneResponse:
    configuration = None
    if with_configuration:
        configuration = ControlPlaneConfiguration(id=CFG_ID, name=cfg_name, status=cfg_status)
    return ControlPlaneResponse(
        control_plane=ControlPlane(
            id=CTP_ID,
            name="prod-east",
            created_at=created_at,
            configuration=configuration,
        ),
        status=status,
    )


@pytest.mark.unit
class TestConvert:
    """Tests for converting API responses into Response."""

    def test_ready(self):
        resp = convert(make_response(status=Status.READY))

        assert isinstance(resp, Response)
        assert resp.id == str(CTP_ID)
        assert resp.name == "prod-east"
        assert resp.synced == "True"
        assert resp.ready == "True"
        assert resp.message == ""

    def test_provisioning(self):
        resp = convert(make_response(status=Status.PROVISIONING))

        assert resp.ready == "False"
        assert resp.message == "Controlplane is being created"

    def test_updating(self):
        resp = convert(make_response(status=Status.UPDATING))

        assert resp.ready == "False"
        assert resp.message == "Controlplane is being updated"

    def test_deleting(self):
        resp = convert(make_response(status=Status.DELETING))

        assert resp.ready == "False"
        assert resp.message == "Controlplane is being deleted"

    def test_unknown_status(self):
        resp = convert(make_response(status="hibernating"))

        assert resp.synced == "True"
        assert resp.ready == "False"
        assert resp.message == ""

    def test_plain_string_status_matches_enum(self):
        resp = convert(make_response(status="ready"))

        assert resp.ready == "True"

    def test_without_configuration(self):
        resp = convert(make_response())

        assert resp.cfg == ""
        assert resp.updated == ""

    def test_configuration_ready(self):
        resp = convert(
            make_response(
                with_configuration=True,
                cfg_name="platform-ref-aws",
                cfg_status=ConfigurationStatus.READY,
            )
        )

        assert resp.cfg == "platform-ref-aws"
        assert resp.updated == "True"

    def test_configuration_pending(self):
        resp = convert(
            make_response(
                with_configuration=True,
                cfg_name="platform-ref-aws",
                cfg_status=ConfigurationStatus.PENDING,
            )
        )

        assert resp.updated == "Pending"

    def test_configuration_without_name(self):
        resp = convert(make_response(with_configuration=True, cfg_status="pending"))

        assert resp.cfg == ""
        assert resp.updated == "Pending"

    def test_age_unset_without_created_at(self):
        resp = convert(make_response())

        assert resp.age is None

    def test_age_since_created_at(self):
        resp = convert(make_response(created_at=datetime.now(UTC) - timedelta(hours=2)))

        assert resp.age is not None
        assert timedelta(hours=2) <= resp.age < timedelta(hours=2, minutes=1)

    def test_response_is_immutable(self):
        resp = convert(make_response())

        with pytest.raises(AttributeError):
            resp.name = "other"  # type: ignore[misc]


@pytest.mark.unit
class TestFormatting:
    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            ("", ""),
            ("ready", "True"),
            ("pending", "Pending"),
            ("installationQueued", "InstallationQueued"),
            ("f", "F"),
        ],
    )
    def test_format_status(self, status: str, expected: str):
        assert format_status(status) == expected

    def test_to_message_ready_is_empty(self):
        assert to_message(Status.READY) == ""

    def test_to_bool(self):
        assert to_bool(True) == "True"
        assert to_bool(False) == "False"


@pytest.mark.unit
class TestNamespaceRejected:
    """Every operation refuses namespaced keys before calling the API."""

    async def test_get(self, cloud_client: CloudClient, mock_ctp_api: AsyncMock):
        with pytest.raises(UnsupportedScopeError, match="namespace is not supported"):
            await cloud_client.get(NAMESPACED)

        mock_ctp_api.get.assert_not_called()

    async def test_list(self, cloud_client: CloudClient, mock_ctp_api: AsyncMock):
        with pytest.raises(UnsupportedScopeError):
            await cloud_client.list("team-a")

        mock_ctp_api.list.assert_not_called()

    async def test_create(
        self,
        cloud_client: CloudClient,
        mock_ctp_api: AsyncMock,
        mock_cfg_getter: AsyncMock,
    ):
        with pytest.raises(UnsupportedScopeError):
            await cloud_client.create(NAMESPACED, Options(configuration_name="platform-ref-aws"))

        mock_cfg_getter.get.assert_not_called()
        mock_ctp_api.create.assert_not_called()

    async def test_delete(self, cloud_client: CloudClient, mock_ctp_api: AsyncMock):
        with pytest.raises(UnsupportedScopeError):
            await cloud_client.delete(NAMESPACED)

        mock_ctp_api.delete.assert_not_called()

    def test_is_value_error(self):
        assert issubclass(UnsupportedScopeError, ValueError)


@pytest.mark.unit
class TestGet:
    async def test_get(self, cloud_client: CloudClient, mock_ctp_api: AsyncMock):
        resp = await cloud_client.get(NamespacedName(name="prod-east"))

        mock_ctp_api.get.assert_awaited_once_with("acme", "prod-east")
        assert resp.name == "prod-east"
        assert resp.ready == "True"
        assert resp.cfg == "platform-ref-aws"
        assert resp.updated == "True"

    async def test_not_found(self, cloud_client: CloudClient, mock_ctp_api: AsyncMock):
        api_error = UpboundError(code=404, message="not found")
        mock_ctp_api.get.side_effect = api_error

        with pytest.raises(NotFoundError) as exc_info:
            await cloud_client.get(NamespacedName(name="missing"))

        assert is_not_found(exc_info.value)
        assert exc_info.value.cause is api_error
        assert exc_info.value.__cause__ is api_error

    async def test_other_error_propagates(
        self, cloud_client: CloudClient, mock_ctp_api: AsyncMock
    ):
        api_error = UpboundError(code=500, message="internal error")
        mock_ctp_api.get.side_effect = api_error

        with pytest.raises(UpboundError) as exc_info:
            await cloud_client.get(NamespacedName(name="prod-east"))

        assert exc_info.value is api_error

    async def test_transport_error_propagates(
        self, cloud_client: CloudClient, mock_ctp_api: AsyncMock
    ):
        mock_ctp_api.get.side_effect = ConnectionError("refused")

        with pytest.raises(ConnectionError):
            await cloud_client.get(NamespacedName(name="prod-east"))


@pytest.mark.unit
class TestList:
    async def test_list(
        self,
        cloud_client: CloudClient,
        mock_ctp_api: AsyncMock,
        provisioning_control_plane: ControlPlaneResponse,
        ready_control_plane: ControlPlaneResponse,
    ):
        mock_ctp_api.list.return_value = ControlPlaneListResponse(
            control_planes=[ready_control_plane, provisioning_control_plane]
        )

        resps = await cloud_client.list()

        mock_ctp_api.list.assert_awaited_once_with("acme", size=MAX_ITEMS)
        assert [r.name for r in resps] == ["prod-east", "staging"]
        assert resps[1].message == "Controlplane is being created"
        assert resps[1].age is None

    async def test_empty(self, cloud_client: CloudClient, mock_ctp_api: AsyncMock):
        mock_ctp_api.list.return_value = ControlPlaneListResponse()

        assert await cloud_client.list("") == []

    def test_page_size(self):
        assert MAX_ITEMS == 100

    async def test_error_propagates(self, cloud_client: CloudClient, mock_ctp_api: AsyncMock):
        mock_ctp_api.list.side_effect = UpboundError(code=403, message="forbidden")

        with pytest.raises(UpboundError):
            await cloud_client.list()


@pytest.mark.unit
class TestCreate:
    async def test_create_without_configuration(
        self,
        cloud_client: CloudClient,
        mock_ctp_api: AsyncMock,
        mock_cfg_getter: AsyncMock,
    ):
        resp = await cloud_client.create(
            NamespacedName(name="prod-east"), Options(description="production")
        )

        mock_cfg_getter.get.assert_not_called()
        mock_ctp_api.create.assert_awaited_once_with(
            "acme",
            ControlPlaneCreateParameters(name="prod-east", description="production"),
        )
        assert resp.name == "prod-east"

    async def test_create_with_configuration(
        self,
        cloud_client: CloudClient,
        mock_ctp_api: AsyncMock,
        mock_cfg_getter: AsyncMock,
    ):
        calls: list[str] = []
        mock_cfg_getter.get.side_effect = lambda *a: calls.append("lookup") or (
            mock_cfg_getter.get.return_value
        )
        mock_ctp_api.create.side_effect = lambda *a: calls.append("create") or (
            mock_ctp_api.create.return_value
        )

        await cloud_client.create(
            NamespacedName(name="prod-east"),
            Options(configuration_name="platform-ref-aws"),
        )

        assert calls == ["lookup", "create"]
        mock_cfg_getter.get.assert_awaited_once_with("acme", "platform-ref-aws")
        params = mock_ctp_api.create.await_args.args[1]
        assert params.configuration_id == CFG_ID

    async def test_lookup_failure_aborts_create(
        self,
        cloud_client: CloudClient,
        mock_ctp_api: AsyncMock,
        mock_cfg_getter: AsyncMock,
    ):
        lookup_error = UpboundError(code=404, message="configuration not found")
        mock_cfg_getter.get.side_effect = lookup_error

        with pytest.raises(UpboundError) as exc_info:
            await cloud_client.create(
                NamespacedName(name="prod-east"),
                Options(configuration_name="missing"),
            )

        assert exc_info.value is lookup_error
        mock_ctp_api.create.assert_not_called()

    async def test_create_error_propagates(
        self, cloud_client: CloudClient, mock_ctp_api: AsyncMock
    ):
        mock_ctp_api.create.side_effect = UpboundError(code=409, message="conflict")

        with pytest.raises(UpboundError):
            await cloud_client.create(NamespacedName(name="prod-east"), Options())


@pytest.mark.unit
class TestDelete:
    async def test_delete(self, cloud_client: CloudClient, mock_ctp_api: AsyncMock):
        result = await cloud_client.delete(NamespacedName(name="prod-east"))

        assert result is None
        mock_ctp_api.delete.assert_awaited_once_with("acme", "prod-east")

    async def test_not_found(self, cloud_client: CloudClient, mock_ctp_api: AsyncMock):
        mock_ctp_api.delete.side_effect = UpboundError(code=404, message="not found")

        with pytest.raises(NotFoundError):
            await cloud_client.delete(NamespacedName(name="missing"))

    async def test_other_error_propagates(
        self, cloud_client: CloudClient, mock_ctp_api: AsyncMock
    ):
        api_error = UpboundError(code=500, message="internal error")
        mock_ctp_api.delete.side_effect = api_error

        with pytest.raises(UpboundError) as exc_info:
            await cloud_client.delete(NamespacedName(name="prod-east"))

        assert exc_info.value is api_error


@pytest.mark.unit
class TestGetKubeConfig:
    async def test_kubeconfig(self, cloud_client: CloudClient, mock_ctp_api: AsyncMock):
        config = await cloud_client.get_kubeconfig(NamespacedName(name="prod-east"))

        assert config["current-context"] == "upbound-acme-prod-east"
        assert config["clusters"][0]["cluster"]["server"] == (
            "https://proxy.upbound.example.com/v1/controlPlanes/acme/prod-east/k8s"
        )
        assert config["users"][0]["user"] == {"token": "test-token"}
        assert "insecure-skip-tls-verify" not in config["clusters"][0]["cluster"]
        mock_ctp_api.get.assert_not_called()

    async def test_defaults_without_options(
        self, mock_ctp_api: AsyncMock, mock_cfg_getter: AsyncMock
    ):
        client = CloudClient(mock_ctp_api, mock_cfg_getter, "acme")

        config = await client.get_kubeconfig(NamespacedName(name="prod-east"))

        assert config["clusters"][0]["cluster"]["server"] == (
            f"{DEFAULT_PROXY_ENDPOINT}/acme/prod-east/k8s"
        )
        assert config["users"][0]["user"] == {}

    async def test_deterministic(self, cloud_client: CloudClient):
        key = NamespacedName(name="prod-east")

        assert await cloud_client.get_kubeconfig(key) == await cloud_client.get_kubeconfig(key)


@pytest.mark.unit
class TestOverHttp:
    """Adapter wired to a real UpboundClient with the HTTP layer mocked."""

    @respx.mock
    async def test_delete_addresses_only_the_named_control_plane(self):
        route = respx.route().mock(return_value=httpx.Response(204))
        settings = UpboundSettings(account="acme", api_endpoint="https://api.example.com")

        async with UpboundClient(settings) as upbound:
            cloud = CloudClient(upbound.control_planes, upbound.configurations, "acme")
            await cloud.delete(NamespacedName(name="../../configurations/acme/platform-ref"))

        request = route.calls[0].request
        assert request.method == "DELETE"
        assert request.url.raw_path.startswith(b"/v1/controlPlanes/acme/")
        assert b"/configurations/" not in request.url.raw_path

    @respx.mock
    async def test_get_404_is_not_found(self):
        respx.get("https://api.example.com/v1/controlPlanes/acme/missing").mock(
            return_value=httpx.Response(404, json={"message": "not found"})
        )
        settings = UpboundSettings(account="acme", api_endpoint="https://api.example.com")

        async with UpboundClient(settings) as upbound:
            cloud = CloudClient(upbound.control_planes, upbound.configurations, "acme")
            with pytest.raises(NotFoundError):
                await cloud.get(NamespacedName(name="missing"))
