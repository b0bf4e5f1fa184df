"""
deployment/ - Deployment Infrastructure

Diagnostics REST API for the definition cache.
"""

from .api import (
    create_fastapi_app,
    EnsureSpaceRequest,
    EnsureSpaceResponse,
    ClearRequest,
    GraphResponse,
)

__all__ = [
    "create_fastapi_app",
    "EnsureSpaceRequest",
    "EnsureSpaceResponse",
    "ClearRequest",
    "GraphResponse",
]
