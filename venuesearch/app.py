from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .businesses.models import EmbeddingUpdate
from .embeddings.precompute import regenerate_embeddings
from .errors import VenueSearchError
from .search.models import (
    EmbeddingRequest,
    SearchRequest,
    SearchResult,
    SemanticSearchRequest,
    UpdateEmbeddingsRequest,
)
from .search.service import embed_text, known_categories, translate_and_search, vector_search
from .store.base import BusinessStore, VectorCollection
from .store.data_store import close_store, get_collections, get_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_store()


app = FastAPI(title="Bookmarked Venue Search API", version="1.0.0", lifespan=lifespan)


def _store() -> BusinessStore:
    return get_store()


def _collections() -> dict[str, VectorCollection]:
    return get_collections()


@app.exception_handler(VenueSearchError)
async def venue_search_error_handler(request: Request, exc: VenueSearchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    body: dict = {"status": "error", "message": exc.message}
    if exc.details is not None:
        body["errors"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
async def metadata(store: BusinessStore = Depends(_store)) -> dict:
    return {"categories": sorted(await known_categories(store))}


# ── Search endpoints ─────────────────────────────────────────────────────


@app.post("/search", response_model=SearchResult, response_model_exclude_none=True)
async def search(
    body: SearchRequest,
    store: BusinessStore = Depends(_store),
) -> SearchResult:
    return await translate_and_search(
        body.query,
        store,
        viewport=body.viewport,
        user_location=body.user_location,
    )


@app.post("/semantic/{collection}")
async def semantic_search(
    collection: str,
    body: SemanticSearchRequest,
    collections: dict[str, VectorCollection] = Depends(_collections),
) -> list[dict]:
    results = await vector_search(
        body.query,
        collection,
        collections,
        limit=body.limit,
        min_score=body.min_score,
    )
    return [
        r.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude={"document": {"embedding"}},
        )
        for r in results
    ]


# ── Embedding endpoints ──────────────────────────────────────────────────


@app.post("/embeddings")
async def embeddings(body: EmbeddingRequest) -> list[float]:
    return await embed_text(body.text)


@app.patch("/businesses/embeddings", response_model=list[EmbeddingUpdate])
async def update_embeddings(
    body: UpdateEmbeddingsRequest,
    store: BusinessStore = Depends(_store),
) -> list[EmbeddingUpdate]:
    return await regenerate_embeddings(store, body.business_aliases)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
