# ABOUTME: Utilities package initialization for Upbound MCP Server
# ABOUTME: Contains shared utilities for the API client, kubeconfigs, safety, and logging

"""
Upbound MCP Utilities Package

Shared utilities:
    - client.py: Upbound API client with retry logic and API data classes
    - kube.py: Kubeconfig construction for control planes
    - safety.py: Read-only mode and destructive operation guards
    - logging.py: Structured logging with correlation IDs
"""
