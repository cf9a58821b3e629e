# ABOUTME: Main MCP server exposing Upbound Cloud control plane tools
# ABOUTME: Wires settings, the Upbound client, the control plane adapter, and safety guards

"""Upbound MCP Server - control planes for AI assistants."""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import structlog
from mcp.server.fastmcp import Context, FastMCP
from pydantic import BaseModel, Field

from upbound_mcp import dep
from upbound_mcp.config import UpboundSettings, load_settings
from upbound_mcp.controlplane import (
    NamespacedName,
    NotFoundError,
    Options,
    UnsupportedScopeError,
)
from upbound_mcp.controlplane.cloud import CloudClient, with_proxy_endpoint, with_token
from upbound_mcp.utils.client import InvalidNameError, UpboundClient, UpboundError
from upbound_mcp.utils.kube import dump_kubeconfig, mask_kubeconfig
from upbound_mcp.utils.logging import AuditLogger, configure_logging, set_correlation_id
from upbound_mcp.utils.safety import ConfirmationRequired, SafetyGuard

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from datetime import timedelta

    from upbound_mcp.controlplane import Response

MCPContext = Context[Any, Any]
logger = structlog.get_logger(__name__)

_settings: UpboundSettings | None = None
_upbound: UpboundClient | None = None
_cloud: CloudClient | None = None
_safety_guard: SafetyGuard | None = None
_audit_logger: AuditLogger | None = None

# Errors rendered back to the agent instead of failing the tool call.
TOOL_ERRORS = (NotFoundError, UnsupportedScopeError, InvalidNameError, UpboundError)


def build_cloud_client(settings: UpboundSettings, upbound: UpboundClient) -> CloudClient:
    """Adapter over an entered UpboundClient, configured from settings."""
    return CloudClient(
        upbound.control_planes,
        upbound.configurations,
        settings.account,
        with_token(settings.token.get_secret_value()),
        with_proxy_endpoint(settings.proxy_endpoint),
    )


@asynccontextmanager
async def lifespan(_server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Manage server lifecycle: load config, connect client, cleanup on shutdown."""
    global _settings, _upbound, _cloud, _safety_guard, _audit_logger

    logger.info("Starting Upbound MCP Server")

    _settings = load_settings()
    configure_logging(level=_settings.log_level)
    _safety_guard = SafetyGuard(_settings.security)
    _audit_logger = AuditLogger(_settings.security.audit_log)

    if _settings.is_configured:
        _upbound = UpboundClient(_settings)
        await _upbound.__aenter__()
        _cloud = build_cloud_client(_settings, _upbound)
        logger.info(
            "Connected to Upbound",
            account=_settings.account,
            api=_settings.api_endpoint,
        )
    else:
        logger.warning("UP_ACCOUNT is not set; control plane tools are unavailable")

    yield {"settings": _settings, "cloud": _cloud}

    if _upbound:
        await _upbound.__aexit__(None, None, None)
        logger.info("Disconnected from Upbound", account=_settings.account)

    _upbound = None
    _cloud = None
    logger.info("Upbound MCP Server stopped")


mcp = FastMCP("upbound-mcp", lifespan=lifespan)


def get_cloud_client() -> CloudClient:
    """Get the control plane adapter."""
    if not _cloud:
        raise RuntimeError("Server not initialized or UP_ACCOUNT not configured")
    return _cloud


def get_settings() -> UpboundSettings:
    if not _settings:
        raise RuntimeError("Server not initialized")
    return _settings


def get_safety_guard() -> SafetyGuard:
    if not _safety_guard:
        raise RuntimeError("Server not initialized")
    return _safety_guard


def get_audit_logger() -> AuditLogger:
    if not _audit_logger:
        raise RuntimeError("Server not initialized")
    return _audit_logger


# =============================================================================
# FORMATTING
# =============================================================================


def format_age(age: timedelta | None) -> str:
    """Compact kubectl-style age: 3d, 5h, 12m, 40s."""
    if age is None:
        return "n/a"
    seconds = max(int(age.total_seconds()), 0)
    if seconds >= 86400:
        return f"{seconds // 86400}d"
    if seconds >= 3600:
        return f"{seconds // 3600}h"
    if seconds >= 60:
        return f"{seconds // 60}m"
    return f"{seconds}s"


def format_control_plane(resp: Response) -> list[str]:
    lines = [
        f"Control Plane: {resp.name}",
        f"ID: {resp.id}",
        f"Synced: {resp.synced}",
        f"Ready: {resp.ready}",
        f"Configuration: {resp.cfg or '-'}",
        f"Configuration Updated: {resp.updated or '-'}",
        f"Age: {format_age(resp.age)}",
    ]
    if resp.message:
        lines.append(f"Message: {resp.message}")
    return lines


def _not_found_message(name: str) -> str:
    return f"Control plane '{name}' not found in account '{get_settings().account}'."


# =============================================================================
# TIER 1: READ OPERATIONS
# =============================================================================


class ListControlPlanesParams(BaseModel):
    """Parameters for list_control_planes tool."""

    namespace: str = Field(
        default="",
        description="Must be empty; Upbound Cloud control planes are not namespaced",
    )


@mcp.tool()
async def list_control_planes(params: ListControlPlanesParams, ctx: MCPContext) -> str:
    """
    List control planes in the configured Upbound account.

    Shows readiness, attached configuration and age for each control plane.
    """
    set_correlation_id(ctx.request_id if hasattr(ctx, "request_id") else "")

    try:
        ctps = await get_cloud_client().list(params.namespace)
        get_audit_logger().log_read("list_control_planes", "all")

        if not ctps:
            return f"No control planes found in account '{get_settings().account}'."

        lines = [f"Found {len(ctps)} control plane(s):", ""]
        for c in ctps:
            ready_marker = "[OK]" if c.ready == "True" else "[!]"
            line = (
                f"- {c.name} ready={c.ready} {ready_marker} "
                f"cfg={c.cfg or '-'} updated={c.updated or '-'} age={format_age(c.age)}"
            )
            if c.message:
                line += f" ({c.message})"
            lines.append(line)

        return "\n".join(lines)

    except TOOL_ERRORS as e:
        get_audit_logger().log_error("list_control_planes", "all", str(e))
        return str(e)


class GetControlPlaneParams(BaseModel):
    """Parameters for get_control_plane tool."""

    name: str = Field(description="Control plane name")


@mcp.tool()
async def get_control_plane(params: GetControlPlaneParams, ctx: MCPContext) -> str:
    """Get details about a single control plane."""
    set_correlation_id(ctx.request_id if hasattr(ctx, "request_id") else "")

    try:
        resp = await get_cloud_client().get(NamespacedName(name=params.name))
        get_audit_logger().log_read("get_control_plane", params.name)
        return "\n".join(format_control_plane(resp))

    except NotFoundError as e:
        get_audit_logger().log_error("get_control_plane", params.name, str(e))
        return _not_found_message(params.name)
    except TOOL_ERRORS as e:
        get_audit_logger().log_error("get_control_plane", params.name, str(e))
        return str(e)


class GetKubeconfigParams(BaseModel):
    """Parameters for get_control_plane_kubeconfig tool."""

    name: str = Field(description="Control plane name")


@mcp.tool()
async def get_control_plane_kubeconfig(params: GetKubeconfigParams, ctx: MCPContext) -> str:
    """
    Get a kubeconfig for a control plane.

    The kubeconfig points at the Upbound proxy. The token is masked unless
    MCP_MASK_SECRETS=false.
    """
    set_correlation_id(ctx.request_id if hasattr(ctx, "request_id") else "")

    config = await get_cloud_client().get_kubeconfig(NamespacedName(name=params.name))
    if get_settings().security.mask_secrets:
        config = mask_kubeconfig(config)

    get_audit_logger().log_read("get_control_plane_kubeconfig", params.name)
    return dump_kubeconfig(config)


class DescribeDependencyParams(BaseModel):
    """Parameters for describe_dependency tool."""

    reference: str = Field(description="Package reference, e.g. xpkg.upbound.io/org/pkg@v1.2.3")
    package_type: str = Field(default="provider", description="provider or configuration")


@mcp.tool()
async def describe_dependency(params: DescribeDependencyParams, ctx: MCPContext) -> str:
    """
    Parse a package reference into a dependency descriptor.

    A reference without "@version" depends on the latest version.
    """
    set_correlation_id(ctx.request_id if hasattr(ctx, "request_id") else "")

    try:
        d = dep.new(params.reference, params.package_type)
    except dep.InvalidReferenceError as e:
        return str(e)

    lines = [
        f"Package: {d.identifier()}",
        f"Type: {d.type}",
        f"Constraints: {d.constraints}",
    ]
    if d.constraints != dep.DEFAULT_CONSTRAINT:
        lines.append(f"Image: {dep.img_tag(d)}")
    return "\n".join(lines)


# =============================================================================
# TIER 2: WRITE OPERATIONS
# =============================================================================


class CreateControlPlaneParams(BaseModel):
    """Parameters for create_control_plane tool."""

    name: str = Field(description="Control plane name")
    description: str = Field(default="", description="Free-form description")
    configuration_name: str | None = Field(
        default=None, description="Configuration to install into the control plane"
    )


@mcp.tool()
async def create_control_plane(params: CreateControlPlaneParams, ctx: MCPContext) -> str:
    """
    Create a control plane in the configured Upbound account.

    Optionally installs a configuration. Requires MCP_READ_ONLY=false.
    """
    set_correlation_id(ctx.request_id if hasattr(ctx, "request_id") else "")

    blocked = get_safety_guard().check_write_operation("create_control_plane")
    if blocked:
        get_audit_logger().log_blocked("create_control_plane", params.name, blocked.reason)
        return blocked.format_message()

    try:
        await ctx.report_progress(0, 1, f"Creating control plane {params.name}")

        resp = await get_cloud_client().create(
            NamespacedName(name=params.name),
            Options(
                description=params.description,
                configuration_name=params.configuration_name,
            ),
        )

        get_audit_logger().log_write(
            "create_control_plane",
            params.name,
            "created",
            {"configuration": params.configuration_name},
        )

        return "\n".join([f"Control plane '{params.name}' created.", "", *format_control_plane(resp)])

    except TOOL_ERRORS as e:
        get_audit_logger().log_error("create_control_plane", params.name, str(e))
        return str(e)


# =============================================================================
# TIER 3: DESTRUCTIVE OPERATIONS
# =============================================================================


class DeleteControlPlaneParams(BaseModel):
    """Parameters for delete_control_plane tool."""

    name: str = Field(description="Control plane name to delete")
    confirm: bool = Field(default=False, description="Must be true to execute deletion")
    confirm_name: str | None = Field(
        default=None, description="Type control plane name to confirm deletion"
    )


@mcp.tool()
async def delete_control_plane(params: DeleteControlPlaneParams, ctx: MCPContext) -> str:
    """
    Delete a control plane (DESTRUCTIVE).

    Requires explicit confirmation. Set confirm=true AND confirm_name
    matching the control plane name to proceed.
    """
    set_correlation_id(ctx.request_id if hasattr(ctx, "request_id") else "")

    blocked = get_safety_guard().check_destructive_operation(
        "delete_control_plane",
        params.name,
        confirmed=params.confirm,
        confirm_name=params.confirm_name,
    )

    if blocked:
        if isinstance(blocked, ConfirmationRequired):
            blocked.details = {"account": get_settings().account}
            get_audit_logger().log_blocked(
                "delete_control_plane", params.name, "confirmation required"
            )
        else:
            get_audit_logger().log_blocked("delete_control_plane", params.name, blocked.reason)
        return blocked.format_message()

    try:
        await ctx.report_progress(0, 1, f"Deleting control plane {params.name}")

        await get_cloud_client().delete(NamespacedName(name=params.name))

        get_audit_logger().log_write("delete_control_plane", params.name, "deleted")
        return f"Control plane '{params.name}' deleted."

    except NotFoundError as e:
        get_audit_logger().log_error("delete_control_plane", params.name, str(e))
        return _not_found_message(params.name)
    except TOOL_ERRORS as e:
        get_audit_logger().log_error("delete_control_plane", params.name, str(e))
        return str(e)


# =============================================================================
# MCP RESOURCES
# =============================================================================


@mcp.resource("upbound://account")
async def get_account_resource() -> str:
    """Get the configured Upbound account and safety mode."""
    settings = get_settings()
    sec = settings.security

    return (
        "Upbound Account:\n"
        f"  Account: {settings.account or '(not configured)'}\n"
        f"  API endpoint: {settings.api_endpoint}\n"
        f"  Proxy endpoint: {settings.proxy_endpoint}\n"
        f"  Read-only mode: {sec.read_only}\n"
        f"  Destructive operations disabled: {sec.disable_destructive}\n"
        f"  Secret masking: {sec.mask_secrets}"
    )


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def main() -> None:
    """Run the Upbound MCP server."""
    configure_logging(level="INFO")
    logger.info("Upbound MCP Server starting")

    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Server interrupted")
        sys.exit(0)
    except Exception as e:
        logger.error("Server error", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
