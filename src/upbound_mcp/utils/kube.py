# ABOUTME: Kubeconfig construction for Upbound control planes
# ABOUTME: Builds kubeconfig dicts that point kubectl at the Upbound proxy

"""
Kubeconfig builder.

Every Upbound control plane is reachable through the Upbound proxy at

    {proxy}/{account}/{name}/k8s

authenticated with an Upbound token. build_control_plane_kubeconfig turns
those three inputs into a self-contained kubeconfig with exactly one cluster,
one user and one context, all sharing the same key:

    upbound-{account}-{name}

The result is a plain dict in kubeconfig layout, so it can be dumped to YAML
or handed to kubernetes.config.load_kube_config_from_dict as-is.
"""

from __future__ import annotations

import posixpath
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import yaml

KUBECONFIG_KEY_FMT = "upbound-{}"
PROXY_K8S_PATH = "k8s"
MASKED = "***MASKED***"


def kubeconfig_key(path: str) -> str:
    """Name shared by the cluster, user and context entries."""
    return KUBECONFIG_KEY_FMT.format(path.strip("/").replace("/", "-"))


def control_plane_server(proxy: str, path: str) -> str:
    """Join path and the k8s suffix onto the proxy URL's own path."""
    parts = urlsplit(proxy)
    joined = posixpath.join(parts.path or "/", path.strip("/"), PROXY_K8S_PATH)
    return urlunsplit((parts.scheme, parts.netloc, joined, "", ""))


def build_control_plane_kubeconfig(
    proxy: str,
    path: str,
    token: str,
    insecure: bool,
) -> dict[str, Any]:
    """
    Build a kubeconfig for a single control plane.

    Args:
        proxy: Upbound proxy endpoint, e.g. https://proxy.upbound.io/v1/controlPlanes
        path: "{account}/{name}" of the control plane
        token: Upbound token; omitted from the user entry when empty
        insecure: Skip TLS verification against the proxy

    Returns:
        Kubeconfig dict with current-context set to the control plane.
    """
    key = kubeconfig_key(path)

    cluster: dict[str, Any] = {"server": control_plane_server(proxy, path)}
    if insecure:
        cluster["insecure-skip-tls-verify"] = True

    user: dict[str, Any] = {}
    if token:
        user["token"] = token

    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [{"name": key, "cluster": cluster}],
        "contexts": [{"name": key, "context": {"cluster": key, "user": key}}],
        "current-context": key,
        "users": [{"name": key, "user": user}],
        "preferences": {},
    }


def mask_kubeconfig(config: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of config with every user token replaced."""
    masked = dict(config)
    masked["users"] = [
        {
            **entry,
            "user": {
                k: (MASKED if k == "token" else v) for k, v in entry.get("user", {}).items()
            },
        }
        for entry in config.get("users", [])
    ]
    return masked


def dump_kubeconfig(config: dict[str, Any]) -> str:
    """Render a kubeconfig dict as YAML, keeping key order."""
    return yaml.safe_dump(config, sort_keys=False)
