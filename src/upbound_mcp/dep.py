# ABOUTME: Package dependency descriptors parsed from "source@version" references
# ABOUTME: Builds Crossplane-style dependencies and renders resolved image tags

"""
Package dependency parsing.

A reference names a Crossplane package and optionally a version:

    xpkg.upbound.io/crossplane-contrib/provider-aws@v0.40.0
    xpkg.upbound.io/upbound/platform-ref-aws            (latest)

new() turns such a reference into a Dependency; img_tag() renders a
Dependency whose constraint has been resolved to an exact version back into
an OCI tag.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

PACKAGE_TAG_FMT = "{}:{}"

# Matches every published semantic version, so resolution picks the latest.
DEFAULT_CONSTRAINT = ">=v0.0.0"


class PackageType(StrEnum):
    PROVIDER = "Provider"
    CONFIGURATION = "Configuration"


class InvalidReferenceError(ValueError):
    """A package reference or package type could not be parsed."""


@dataclass
class Dependency:
    """A package plus the version constraint it must satisfy."""

    package: str
    type: PackageType = PackageType.PROVIDER
    constraints: str = DEFAULT_CONSTRAINT

    def identifier(self) -> str:
        return self.package


def new(reference: str, type_hint: str = "") -> Dependency:
    """
    Build a Dependency from a "source@version" reference.

    The version may be left off to mean latest. The package type is provider
    unless type_hint is "configuration" in any letter case.

    Raises:
        InvalidReferenceError: the reference has more than one "@", an empty
            source, or type_hint names an unknown package type
    """
    source, sep, version = reference.partition("@")
    if not source:
        raise InvalidReferenceError(f"package reference {reference!r} has no source")
    if "@" in version:
        raise InvalidReferenceError(
            f"package reference {reference!r} must be of the form source@version"
        )

    return Dependency(
        package=source,
        type=_package_type(type_hint),
        constraints=version if sep and version else DEFAULT_CONSTRAINT,
    )


def _package_type(hint: str) -> PackageType:
    if not hint:
        return PackageType.PROVIDER
    try:
        return PackageType(hint.lower().title())
    except ValueError:
        raise InvalidReferenceError(
            f"unknown package type {hint!r}; expected provider or configuration"
        ) from None


def img_tag(d: Dependency) -> str:
    """
    Full image tag "source:version" of the dependency.

    Only valid once the constraint has been resolved to an exact version; a
    semver range does not make a usable tag.
    """
    return PACKAGE_TAG_FMT.format(d.identifier(), d.constraints)
