"""
Parts Search HTTP Backend
Exposes the QueryOrchestrator over FastAPI
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from config.config import Config
from parts_search.errors import CatalogFetchError, CatalogStoreError, ItemNotFoundError
from parts_search.models import (
    BatchUpdateResult,
    CatalogItem,
    SearchFilters,
    SearchResponse,
    VehicleDescriptor,
)
from parts_search.orchestrator.orchestrator import QueryOrchestrator

# Use config
config = Config

_orchestrator: Optional[QueryOrchestrator] = None


def get_orchestrator() -> QueryOrchestrator:
    """Shared orchestrator, created on first use (overridable in tests)"""
    global _orchestrator
    if _orchestrator is None:
        print("🚀 Initializing parts search orchestrator...")
        _orchestrator = QueryOrchestrator()
        print(f"✅ Catalog Store: {config.CATALOG_DB_PATH}")
    return _orchestrator


def shutdown_orchestrator():
    global _orchestrator
    if _orchestrator is not None:
        _orchestrator.close()
        _orchestrator = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    shutdown_orchestrator()


# Initialize FastAPI
app = FastAPI(title="Parts Search Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=".*",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class CompatibilityUpdate(BaseModel):
    """Body of PUT /items/{item_id}/compatibility"""
    compatibility: List[VehicleDescriptor] = Field(default_factory=list)
    merge: bool = True


class BatchCompatibilityRequest(BaseModel):
    """Body of POST /compatibility/batch"""
    items: List[Dict[str, Any]] = Field(default_factory=list)


@app.get("/")
def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "Parts Search Backend",
        "version": "1.0.0",
    }


@app.post("/search", response_model=SearchResponse)
def search(filters: SearchFilters, orchestrator: QueryOrchestrator = Depends(get_orchestrator)):
    """Filtered, relevance-ranked catalog search"""
    try:
        return orchestrator.search(filters)
    except CatalogFetchError as e:
        print(f"❌ Search failed: {e}")
        raise HTTPException(status_code=503, detail="Catalog temporarily unavailable")


@app.get("/suggestions")
def suggestions(
    q: str = Query(default=""),
    limit: int = Query(default=config.SUGGESTION_LIMIT, ge=1, le=50),
    orchestrator: QueryOrchestrator = Depends(get_orchestrator)
):
    """Query completion suggestions"""
    return {"query": q, "suggestions": orchestrator.get_suggestions(q, limit)}


@app.get("/popular-searches")
def popular_searches(
    limit: int = Query(default=config.POPULAR_SEARCH_LIMIT, ge=1, le=100),
    orchestrator: QueryOrchestrator = Depends(get_orchestrator)
):
    """Most popular search terms"""
    return {"searches": orchestrator.get_popular_searches(limit)}


@app.get("/items/{item_id}", response_model=CatalogItem)
def get_item(item_id: str, orchestrator: QueryOrchestrator = Depends(get_orchestrator)):
    """Single approved item with its compatibility list"""
    try:
        return orchestrator.get_item_by_id(item_id)
    except ItemNotFoundError:
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")
    except CatalogStoreError as e:
        print(f"❌ Item lookup failed for {item_id}: {e}")
        raise HTTPException(status_code=503, detail="Catalog temporarily unavailable")


@app.put("/items/{item_id}/compatibility", response_model=CatalogItem)
def update_compatibility(
    item_id: str,
    payload: CompatibilityUpdate,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator)
):
    """Replace or extend an item's compatibility list"""
    try:
        return orchestrator.update_item_compatibility(item_id, payload.compatibility, merge=payload.merge)
    except ItemNotFoundError:
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")
    except CatalogStoreError as e:
        print(f"❌ Compatibility update failed for {item_id}: {e}")
        raise HTTPException(status_code=503, detail="Catalog temporarily unavailable")


@app.post("/compatibility/batch", response_model=BatchUpdateResult)
def batch_compatibility(
    payload: BatchCompatibilityRequest,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator)
):
    """Generate and persist compatibility for many items"""
    return orchestrator.batch_update_compatibility(payload.items)


@app.post("/cache/invalidate/{item_id}")
def invalidate_item(item_id: str, orchestrator: QueryOrchestrator = Depends(get_orchestrator)):
    """Drop cached entries that may contain an item"""
    return {"item_id": item_id, "removed": orchestrator.invalidate(item_id)}


@app.post("/cache/clear")
def clear_cache(orchestrator: QueryOrchestrator = Depends(get_orchestrator)):
    """Drop every cached entry"""
    return {"removed": orchestrator.invalidate_all()}


@app.get("/metrics")
def metrics(orchestrator: QueryOrchestrator = Depends(get_orchestrator)):
    """Search counters and cache statistics"""
    return orchestrator.get_search_metrics()


# Development server
if __name__ == "__main__":
    import uvicorn
    print("\n" + "=" * 80)
    print("🚀 Starting Parts Search Backend")
    print("=" * 80)
    print(f"📍 Endpoint: http://localhost:{config.API_PORT}/search")
    print(f"💾 Catalog: {config.CATALOG_DB_PATH}")
    print("=" * 80 + "\n")

    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT, log_level="info")
