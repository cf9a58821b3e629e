# ABOUTME: Upbound Cloud API client wrapper with retry logic and error handling
# ABOUTME: Provides async access to the control plane and configuration endpoints

"""
Upbound Cloud API client with retry logic and structured error handling.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

This module provides the HTTP client for communicating with the Upbound REST
API. It handles:

1. HTTP COMMUNICATION: Making requests to Upbound endpoints
2. AUTHENTICATION: Attaching Bearer tokens to requests
3. ERROR HANDLING: Converting HTTP errors to UpboundError
4. RETRY LOGIC: Retrying requests that timed out
5. DATA CLASSES: Turning JSON payloads into typed objects

=============================================================================
UPBOUND REST API OVERVIEW
=============================================================================

The endpoints used here live under /v1/ and are scoped by account:

    GET    /v1/controlPlanes/{account}          - List control planes
    POST   /v1/controlPlanes/{account}          - Create a control plane
    GET    /v1/controlPlanes/{account}/{name}   - Get one control plane
    DELETE /v1/controlPlanes/{account}/{name}   - Delete a control plane
    GET    /v1/configurations/{account}/{name}  - Get a configuration

A control plane response looks like:

    {
        "controlPlane": {
            "id": "2a5f...",
            "name": "prod-east",
            "description": "",
            "createdAt": "2023-04-01T10:00:00Z",
            "configuration": {"id": "...", "name": "platform-ref", "status": "ready"}
        },
        "status": "ready",
        "permission": "owner"
    }

=============================================================================
TWO SUB-CLIENTS, ONE CONNECTION POOL
=============================================================================

UpboundClient owns the httpx.AsyncClient. Resource-specific calls live on two
small facades that share it:

    async with UpboundClient(settings) as client:
        ctp = await client.control_planes.get("acme", "prod-east")
        cfg = await client.configurations.get("acme", "platform-ref")

The facades are what the control plane adapter depends on, which keeps the
adapter testable with plain mocks.
"""

# =============================================================================
# IMPORTS
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from urllib.parse import quote
from uuid import UUID

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:
    from upbound_mcp.config import UpboundSettings

logger = structlog.get_logger(__name__)

NIL_UUID = UUID(int=0)


# =============================================================================
# UPBOUND ERROR CLASS
# =============================================================================


class UpboundError(Exception):
    """
    Structured Upbound API error.

    Keeps the HTTP status code so callers can tell "no such control plane"
    (404) apart from everything else:

        try:
            await client.control_planes.get("acme", "missing")
        except UpboundError as e:
            if is_not_found(e):
                ...
    """

    def __init__(self, code: int, message: str, details: str | None = None) -> None:
        self.code = code
        self.message = message
        self.details = details
        super().__init__(str(self))

    def __str__(self) -> str:
        base = f"Upbound API error ({self.code}): {self.message}"
        if self.details:
            base += f" - {self.details}"
        return base


def is_not_found(err: BaseException | None) -> bool:
    """Report whether err is an Upbound API 404."""
    return isinstance(err, UpboundError) and err.code == httpx.codes.NOT_FOUND


class InvalidNameError(ValueError):
    """An account or resource name cannot be used as a URL path segment."""


def path_segment(value: str) -> str:
    """
    Escape value so it stays a single path segment.

    "/", "?" and "#" are percent-encoded. Empty, "." and ".." are rejected
    because httpx would collapse them into a different path.
    """
    if value in ("", ".", ".."):
        raise InvalidNameError(f"invalid name {value!r}")
    return quote(value, safe="")


# =============================================================================
# STATUS ENUMS
# =============================================================================


class Status(StrEnum):
    """Lifecycle status of a control plane."""

    PROVISIONING = "provisioning"
    READY = "ready"
    UPDATING = "updating"
    DELETING = "deleting"


class ConfigurationStatus(StrEnum):
    """Installation status of the configuration attached to a control plane."""

    READY = "ready"
    PENDING = "pending"
    INSTALLATION_QUEUED = "installationQueued"
    UPGRADE_QUEUED = "upgradeQueued"
    FAILED = "failed"


def _parse_uuid(value: Any) -> UUID:
    if not value:
        return NIL_UUID
    return value if isinstance(value, UUID) else UUID(str(value))


def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _parse_enum(enum: type[StrEnum], value: Any) -> str:
    # Unknown values are kept verbatim so new API states still render.
    if value is None:
        return ""
    try:
        return enum(value)
    except ValueError:
        return str(value)


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class ControlPlaneConfiguration:
    """Configuration reference embedded in a control plane."""

    id: UUID
    name: str | None
    status: ConfigurationStatus | str = ""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> ControlPlaneConfiguration:
        return cls(
            id=_parse_uuid(data.get("id")),
            name=data.get("name"),
            status=_parse_enum(ConfigurationStatus, data.get("status")),
        )


@dataclass
class ControlPlane:
    """
    Control plane record as stored by Upbound.

    created_at and configuration are optional; the API omits them for
    control planes that are still being provisioned or were created without
    a configuration.
    """

    id: UUID
    name: str
    description: str = ""
    created_at: datetime | None = None
    configuration: ControlPlaneConfiguration | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> ControlPlane:
        configuration = data.get("configuration")
        return cls(
            id=_parse_uuid(data.get("id")),
            name=data.get("name") or "",
            description=data.get("description") or "",
            created_at=_parse_time(data.get("createdAt")),
            configuration=(
                ControlPlaneConfiguration.from_api_response(configuration)
                if configuration
                else None
            ),
        )


@dataclass
class ControlPlaneResponse:
    """A control plane together with its status and the caller's permission."""

    control_plane: ControlPlane
    status: Status | str = ""
    permission: str = ""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> ControlPlaneResponse:
        return cls(
            control_plane=ControlPlane.from_api_response(data.get("controlPlane") or {}),
            status=_parse_enum(Status, data.get("status")),
            permission=data.get("permission", ""),
        )


@dataclass
class ControlPlaneListResponse:
    """One page of control planes."""

    control_planes: list[ControlPlaneResponse] = field(default_factory=list)
    count: int = 0
    page: int = 0
    size: int = 0

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> ControlPlaneListResponse:
        items = data.get("controlPlanes") or []
        return cls(
            control_planes=[ControlPlaneResponse.from_api_response(item) for item in items],
            count=data.get("count", len(items)),
            page=data.get("page", 0),
            size=data.get("size", 0),
        )


@dataclass
class ControlPlaneCreateParameters:
    """Request body for creating a control plane."""

    name: str
    description: str = ""
    configuration_id: UUID | None = None

    def to_api_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
        }
        if self.configuration_id is not None:
            payload["configurationId"] = str(self.configuration_id)
        return payload


@dataclass
class ConfigurationResponse:
    """A configuration package registered in an account."""

    id: UUID
    name: str

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> ConfigurationResponse:
        return cls(
            id=_parse_uuid(data.get("id")),
            name=data.get("name") or "",
        )


# =============================================================================
# UPBOUND CLIENT
# =============================================================================


class UpboundClient:
    """
    Async Upbound API client with retry logic.

    LIFECYCLE:
    ----------
    1. Create client: client = UpboundClient(settings)
    2. Enter context: async with client: ...
    3. Use client: await client.control_planes.list("acme")
    4. Exit context: HTTP connections cleaned up

    RETRY LOGIC:
    ------------
    Only timeouts are retried (3 attempts, exponential backoff). API errors
    such as 404 or 409 are returned to the caller right away.
    """

    def __init__(self, settings: UpboundSettings) -> None:
        """
        Initialize Upbound client.

        The HTTP connection pool is created later in __aenter__.

        Args:
            settings: Upbound settings (endpoint, token, TLS, timeout)
        """
        self._settings = settings
        self._timeout = settings.timeout
        self._client: httpx.AsyncClient | None = None
        self.control_planes = ControlPlanesClient(self)
        self.configurations = ConfigurationsClient(self)

    async def __aenter__(self) -> UpboundClient:
        headers = {"Content-Type": "application/json"}
        token = self._settings.token.get_secret_value()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=f"{self._settings.api_endpoint}/v1",
            headers=headers,
            timeout=self._timeout,
            verify=not self._settings.insecure,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @retry(
        retry=retry_if_exception_type(httpx.TimeoutException),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Make HTTP request to the Upbound API.

        Args:
            method: HTTP method ("GET", "POST", "DELETE")
            path: API path (e.g., "/controlPlanes/acme")
            params: URL query parameters (optional)
            json_data: JSON request body (optional)

        Returns:
            API response as dictionary ({} for empty bodies)

        Raises:
            UpboundError: On API error (4xx, 5xx)
            httpx.TimeoutException: On request timeout (after retries)
            RuntimeError: If client not initialized (forgot async with)
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        log = logger.bind(method=method, path=path)
        log.debug("Making Upbound API request")

        response = await self._client.request(
            method,
            path,
            params=params,
            json=json_data,
        )

        if response.status_code >= 400:
            error_body = response.text
            log.warning("Upbound API error", status=response.status_code, body=error_body[:200])

            message = f"HTTP {response.status_code}"
            details = None
            try:
                error_json = response.json()
                if isinstance(error_json, dict):
                    message = error_json.get("message") or message
                    details = error_json.get("error") or error_json.get("reason")
            except ValueError:
                details = error_body[:200] if error_body else None

            raise UpboundError(
                code=response.status_code,
                message=message,
                details=details,
            )

        result = response.json() if response.content else {}
        return result if isinstance(result, dict) else {}


class ControlPlanesClient:
    """Control plane endpoints, scoped by account."""

    def __init__(self, client: UpboundClient) -> None:
        self._client = client

    async def create(
        self,
        account: str,
        params: ControlPlaneCreateParameters,
    ) -> ControlPlaneResponse:
        """Create a control plane. API: POST /v1/controlPlanes/{account}"""
        data = await self._client._request(
            "POST",
            f"/controlPlanes/{path_segment(account)}",
            json_data=params.to_api_payload(),
        )
        return ControlPlaneResponse.from_api_response(data)

    async def delete(self, account: str, name: str) -> None:
        """Delete a control plane. API: DELETE /v1/controlPlanes/{account}/{name}"""
        path = f"/controlPlanes/{path_segment(account)}/{path_segment(name)}"
        await self._client._request("DELETE", path)

    async def get(self, account: str, name: str) -> ControlPlaneResponse:
        """
        Get a control plane by name.

        Raises:
            UpboundError: 404 if the control plane does not exist
        """
        path = f"/controlPlanes/{path_segment(account)}/{path_segment(name)}"
        data = await self._client._request("GET", path)
        return ControlPlaneResponse.from_api_response(data)

    async def list(
        self,
        account: str,
        size: int | None = None,
        page: int | None = None,
    ) -> ControlPlaneListResponse:
        """
        List control planes in an account.

        Args:
            account: Upbound account
            size: Page size (server default when omitted)
            page: Page number (first page when omitted)
        """
        params: dict[str, int] = {}
        if size is not None:
            params["size"] = size
        if page is not None:
            params["page"] = page

        data = await self._client._request(
            "GET",
            f"/controlPlanes/{path_segment(account)}",
            params=params or None,
        )
        return ControlPlaneListResponse.from_api_response(data)


class ConfigurationsClient:
    """Configuration endpoints, scoped by account."""

    def __init__(self, client: UpboundClient) -> None:
        self._client = client

    async def get(self, account: str, name: str) -> ConfigurationResponse:
        """Get a configuration by name. API: GET /v1/configurations/{account}/{name}"""
        path = f"/configurations/{path_segment(account)}/{path_segment(name)}"
        data = await self._client._request("GET", path)
        return ConfigurationResponse.from_api_response(data)
