# ABOUTME: Upbound MCP package initialization
# ABOUTME: Exposes version information for the control-plane adapter and server

"""
Upbound MCP - Upbound Cloud control planes via Model Context Protocol.

=============================================================================
WHAT IS THIS PACKAGE?
=============================================================================

This package wraps the Upbound Cloud control-plane API and exposes it in two
layers:

1. ADAPTER: `controlplane.cloud.CloudClient` translates API responses into a
   flat, presentation-friendly `Response` object and builds kubeconfigs.

2. SERVER: `server.py` publishes MCP tools (list, get, create, delete,
   kubeconfig) that an AI assistant can call.

A small, independent helper (`dep.py`) parses package references of the form
"source@version" into dependency descriptors.

=============================================================================
WHAT IS AN UPBOUND CONTROL PLANE?
=============================================================================

A control plane is a managed Crossplane instance hosted by Upbound. Each one
lives inside an ACCOUNT and is addressed by name:

    account "acme" -> control plane "prod-east"

Control planes can be created from a CONFIGURATION, a package bundling
composite resource definitions and compositions.

=============================================================================
PACKAGE STRUCTURE OVERVIEW
=============================================================================

upbound_mcp/
├── __init__.py          <- YOU ARE HERE: Package entry point
├── config.py            <- Configuration management (env vars, settings)
├── dep.py               <- "source@version" dependency parsing
├── server.py            <- MCP server with all tools defined
├── controlplane/
│   ├── __init__.py      <- Response DTO, options and error types
│   └── cloud.py         <- Adapter over the Upbound Cloud API
└── utils/
    ├── __init__.py      <- Utils subpackage marker
    ├── client.py        <- HTTP client for the Upbound REST API
    ├── kube.py          <- Kubeconfig builder
    ├── logging.py       <- Structured logging with audit trails
    └── safety.py        <- Read-only and destructive operation guards
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
