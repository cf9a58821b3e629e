# ABOUTME: Control plane domain types shared by adapters and the MCP server
# ABOUTME: Defines the Response DTO, create options, object keys and error types

"""
Control plane domain model.

Backends (currently only Upbound Cloud, see cloud.py) translate their own API
objects into these types so the presentation layer never sees backend DTOs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta  # noqa: TC003 - dataclass field type


@dataclass(frozen=True)
class NamespacedName:
    """Identifying key of a control plane."""

    name: str
    namespace: str = ""

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name


@dataclass(frozen=True)
class Options:
    """Optional settings for creating a control plane."""

    description: str = ""
    configuration_name: str | None = None


@dataclass(frozen=True)
class Response:
    """
    Presentation-friendly view of a control plane.

    synced and ready are "True"/"False" strings because they are rendered
    as-is in tabular output. age is None when the backend did not report a
    creation time.
    """

    id: str
    name: str
    synced: str
    ready: str
    message: str = ""
    cfg: str = ""
    updated: str = ""
    age: timedelta | None = None


class NotFoundError(Exception):
    """The requested control plane does not exist."""

    def __init__(self, cause: BaseException | None = None) -> None:
        self.cause = cause
        message = "control plane not found"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class UnsupportedScopeError(ValueError):
    """A namespace was supplied to a backend that has no namespaces."""


def is_not_found(err: BaseException | None) -> bool:
    """Report whether err signals a missing control plane."""
    return isinstance(err, NotFoundError)


__all__ = [
    "NamespacedName",
    "NotFoundError",
    "Options",
    "Response",
    "UnsupportedScopeError",
    "is_not_found",
]
