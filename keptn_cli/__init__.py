"""
Keptn CLI - Three-layer client for the Keptn control plane API.

Layers:
- core: Raw types, HTTP client construction and the request pipeline
- sdk: High-level KeptnClient with nice ergonomics
- cli: Opinionated command-line interface
"""

from keptn_cli.sdk import KeptnClient

__version__ = "0.1.0"
__all__ = ["KeptnClient"]
