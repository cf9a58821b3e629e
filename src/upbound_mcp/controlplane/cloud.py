# ABOUTME: Upbound Cloud backend for control plane operations
# ABOUTME: Wraps the control plane and configuration APIs and normalizes their responses

"""
Upbound Cloud control plane adapter.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

CloudClient sits between the Upbound API client (utils/client.py) and the
presentation layer (server.py). It:

1. SCOPES every call to the configured Upbound account
2. REJECTS namespaced keys, since Upbound Cloud has no namespaces
3. TRANSLATES 404s into controlplane.NotFoundError
4. CONVERTS API DTOs into controlplane.Response
5. BUILDS kubeconfigs pointing at the Upbound proxy

Nothing is retried, cached or logged as an error here: API failures reach the
caller unchanged, apart from the 404 translation.

=============================================================================
WHY PROTOCOLS?
=============================================================================

The adapter depends on two small capability contracts instead of the
concrete UpboundClient:

    ControlPlaneAPI      -> create / delete / get / list
    ConfigurationGetter  -> get

UpboundClient.control_planes and UpboundClient.configurations satisfy them,
and so does an AsyncMock in tests.

=============================================================================
OPTIONS
=============================================================================

Token and proxy endpoint are optional and applied at construction:

    client = CloudClient(
        upbound.control_planes,
        upbound.configurations,
        "acme",
        with_token("my-token"),
        with_proxy_endpoint("https://proxy.upbound.io/v1/controlPlanes"),
    )
"""

from __future__ import annotations

import posixpath
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from upbound_mcp.config import DEFAULT_PROXY_ENDPOINT
from upbound_mcp.controlplane import NotFoundError, Response, UnsupportedScopeError
from upbound_mcp.utils.client import ConfigurationStatus, ControlPlaneCreateParameters, Status
from upbound_mcp.utils.client import is_not_found as is_api_not_found
from upbound_mcp.utils.kube import build_control_plane_kubeconfig

if TYPE_CHECKING:
    from upbound_mcp.controlplane import NamespacedName, Options
    from upbound_mcp.utils.client import (
        ConfigurationResponse,
        ControlPlaneListResponse,
        ControlPlaneResponse,
    )

logger = structlog.get_logger(__name__)

# Page size for list; Upbound accounts rarely hold more control planes.
MAX_ITEMS = 100

UNSUPPORTED_NAMESPACE = "namespace is not supported for Upbound Cloud control planes"


# =============================================================================
# WRAPPED CLIENT CONTRACTS
# =============================================================================


class ControlPlaneAPI(Protocol):
    """Control plane operations scoped by account."""

    async def create(
        self, account: str, params: ControlPlaneCreateParameters
    ) -> ControlPlaneResponse: ...

    async def delete(self, account: str, name: str) -> None: ...

    async def get(self, account: str, name: str) -> ControlPlaneResponse: ...

    async def list(self, account: str, size: int | None = None) -> ControlPlaneListResponse: ...


class ConfigurationGetter(Protocol):
    """Configuration lookup scoped by account."""

    async def get(self, account: str, name: str) -> ConfigurationResponse: ...


Option = Callable[["CloudClient"], None]


def with_token(token: str) -> Option:
    """Use token for the kubeconfigs handed out by get_kubeconfig."""

    def apply(c: CloudClient) -> None:
        c.token = token

    return apply


def with_proxy_endpoint(proxy: str) -> Option:
    """Point kubeconfigs at proxy instead of the public Upbound proxy."""

    def apply(c: CloudClient) -> None:
        c.proxy = proxy

    return apply


# =============================================================================
# CLOUD CLIENT
# =============================================================================


class CloudClient:
    """Client for the control plane API of Upbound Cloud."""

    def __init__(
        self,
        ctp: ControlPlaneAPI,
        cfg: ConfigurationGetter,
        account: str,
        *opts: Option,
    ) -> None:
        self._ctp = ctp
        self._cfg = cfg
        self.account = account
        # Token embedded in generated kubeconfigs.
        self.token = ""
        self.proxy = DEFAULT_PROXY_ENDPOINT

        for o in opts:
            o(self)

    async def get(self, ctp: NamespacedName) -> Response:
        """
        Get the control plane with the given name.

        Raises:
            UnsupportedScopeError: ctp carries a namespace
            NotFoundError: the control plane does not exist
        """
        _require_no_namespace(ctp.namespace)
        logger.debug("Getting control plane", account=self.account, name=ctp.name)

        try:
            resp = await self._ctp.get(self.account, ctp.name)
        except Exception as e:
            if is_api_not_found(e):
                raise NotFoundError(e) from e
            raise

        return convert(resp)

    async def list(self, namespace: str = "") -> list[Response]:
        """List all control planes in the account."""
        _require_no_namespace(namespace)
        logger.debug("Listing control planes", account=self.account)

        page = await self._ctp.list(self.account, size=MAX_ITEMS)
        return [convert(r) for r in page.control_planes]

    async def create(self, ctp: NamespacedName, opts: Options) -> Response:
        """
        Create a control plane with the given name and options.

        When opts names a configuration it is resolved to its ID first; a
        failed lookup aborts the create.
        """
        _require_no_namespace(ctp.namespace)

        params = ControlPlaneCreateParameters(
            name=ctp.name,
            description=opts.description,
        )
        if opts.configuration_name is not None:
            cfg = await self._cfg.get(self.account, opts.configuration_name)
            params.configuration_id = cfg.id

        logger.debug(
            "Creating control plane",
            account=self.account,
            name=ctp.name,
            configuration=opts.configuration_name,
        )
        resp = await self._ctp.create(self.account, params)
        return convert(resp)

    async def delete(self, ctp: NamespacedName) -> None:
        """
        Delete the control plane with the given name.

        Raises:
            UnsupportedScopeError: ctp carries a namespace
            NotFoundError: the control plane does not exist
        """
        _require_no_namespace(ctp.namespace)
        logger.debug("Deleting control plane", account=self.account, name=ctp.name)

        try:
            await self._ctp.delete(self.account, ctp.name)
        except Exception as e:
            if is_api_not_found(e):
                raise NotFoundError(e) from e
            raise

    async def get_kubeconfig(self, ctp: NamespacedName) -> dict[str, Any]:
        """Kubeconfig for the control plane. Makes no API call and cannot fail."""
        return build_control_plane_kubeconfig(
            self.proxy,
            posixpath.join(self.account, ctp.name),
            self.token,
            False,
        )


def _require_no_namespace(namespace: str) -> None:
    if namespace:
        raise UnsupportedScopeError(UNSUPPORTED_NAMESPACE)


# =============================================================================
# CONVERSION
# =============================================================================


def convert(resp: ControlPlaneResponse) -> Response:
    """Translate an API control plane response into a Response."""
    ctp = resp.control_plane

    cfg_name = ""
    cfg_status: str = ""
    if ctp.configuration is not None:
        cfg_name = ctp.configuration.name or ""
        cfg_status = ctp.configuration.status

    age = None
    if ctp.created_at is not None:
        age = datetime.now(UTC) - ctp.created_at

    return Response(
        id=str(ctp.id),
        name=ctp.name,
        synced=to_bool(True),
        ready=to_bool(resp.status == Status.READY),
        message=to_message(resp.status),
        cfg=cfg_name,
        updated=format_status(cfg_status),
        age=age,
    )


def format_status(status: str) -> str:
    """Human-case a configuration status: ready becomes True, others are capitalized."""
    if not status:
        return ""
    if status == ConfigurationStatus.READY:
        return "True"
    return status[:1].upper() + status[1:]


def to_message(status: str) -> str:
    """Describe in-flight lifecycle states; settled states get no message."""
    messages = {
        Status.PROVISIONING: "Controlplane is being created",
        Status.UPDATING: "Controlplane is being updated",
        Status.DELETING: "Controlplane is being deleted",
    }
    return messages.get(status, "")


def to_bool(b: bool) -> str:
    return "True" if b else "False"
