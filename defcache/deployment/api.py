"""
deployment/api.py - Diagnostics REST API

Read-only views of the cache plus the two operations exposed to the
definition-loading layer (ensure free space, clear).
"""

from typing import Any, Dict, List, Optional, TYPE_CHECKING
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from defcache.errors import CyclicDependencyError, StorageUnavailable
from defcache.eviction.audit_log import EventType

if TYPE_CHECKING:
    from defcache.bootstrap.app import CacheApp

logger = logging.getLogger("deployment.api")

API_VERSION = "1.0.0"


# =============================================================================
# Request/Response Models
# =============================================================================

class EnsureSpaceRequest(BaseModel):
    """Request model for making room in the definition store."""
    required_kb: float = Field(0.0, ge=0.0)


class EnsureSpaceResponse(BaseModel):
    evicted: List[str]
    evicted_count: int
    size_kb: float


class ClearRequest(BaseModel):
    """Request model for clearing the store."""
    reason: str = "api"
    details: Dict[str, Any] = Field(default_factory=dict)


class GraphNodeModel(BaseModel):
    id: str
    dependencies: List[str]
    action: bool


class GraphResponse(BaseModel):
    nodes: List[GraphNodeModel]
    eviction_order: List[str]
    edge_count: int


def create_fastapi_app(cache_app: "CacheApp") -> FastAPI:
    """
    Create FastAPI application bound to a CacheApp.

    Args:
        cache_app: Wired definition cache

    Returns:
        FastAPI application instance
    """
    api_config = cache_app.config.api
    service = cache_app.service

    app = FastAPI(
        title="Definition Cache API",
        description="Persistent component definition cache diagnostics",
        version=API_VERSION,
        docs_url=api_config.docs_url if api_config.enable_docs else None,
        redoc_url="/redoc" if api_config.enable_docs else None,
    )

    @app.on_event("shutdown")
    async def shutdown_event():
        await cache_app.shutdown()

    # =========================================================================
    # Health
    # =========================================================================

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": API_VERSION,
            "persistent": service.storage.is_persistent(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # =========================================================================
    # Cache Endpoints
    # =========================================================================

    @app.get("/api/v1/cache/stats")
    async def get_stats():
        return await service.get_stats()

    @app.get("/api/v1/cache/graph", response_model=GraphResponse)
    async def get_graph():
        try:
            graph, order = await service.build_eviction_plan()
        except StorageUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e))
        except CyclicDependencyError as e:
            logger.error(f"Dependency graph has a cycle: {e}")
            raise HTTPException(
                status_code=409,
                detail={"message": str(e), "cycle": e.cycle},
            )

        return GraphResponse(
            nodes=[GraphNodeModel(**node.to_dict()) for node in graph.nodes()],
            eviction_order=list(reversed(order)),
            edge_count=graph.edge_count,
        )

    @app.get("/api/v1/cache/events")
    async def get_events(
        event_type: Optional[str] = Query(None),
        limit: int = Query(100, ge=1, le=1000),
    ):
        event_types = None
        if event_type:
            try:
                event_types = {EventType(event_type)}
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Unknown event type: {event_type}")

        entries = service.eviction_log.query(event_types=event_types, limit=limit)
        return {"events": [e.to_dict() for e in entries], "count": len(entries)}

    @app.post("/api/v1/cache/ensure-space", response_model=EnsureSpaceResponse)
    async def ensure_space(request: EnsureSpaceRequest):
        evicted = await service.ensure_free_space(request.required_kb)
        return EnsureSpaceResponse(
            evicted=evicted,
            evicted_count=len(evicted),
            size_kb=await service.storage.get_size(),
        )

    @app.post("/api/v1/cache/clear")
    async def clear_cache(request: ClearRequest):
        await service.clear_all({"cause": "api", "reason": request.reason, **request.details})
        return {"cleared": True}

    return app
