"""FastAPI web server for the pearl archive."""

from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from pearlarchive import __version__
from pearlarchive.config import ArchiveConfig
from pearlarchive.core.archive import Archive
from pearlarchive.core.exporter import to_dict
from pearlarchive.core.ordering import SessionOrdering, SortMode
from pearlarchive.exceptions import (
    ArchiveError,
    AuthenticationRequiredError,
    AuthorizationError,
    CorpusLoadError,
    InvalidRequestError,
    StorageError,
)
from pearlarchive.logging import bind_request_context, clear_request_context, get_logger
from pearlarchive.models.principal import Principal
from pearlarchive.models.view import FilterState

_log = get_logger("api")


# Request/Response models
class CamelModel(BaseModel):
    """Request body using the camelCase wire names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ThreadRef(CamelModel):
    """Identifies a thread."""

    thread_id: str = Field(..., min_length=1, description="Thread identifier")


class TweetRef(ThreadRef):
    """Identifies a tweet by its original index within a thread."""

    tweet_index: int = Field(..., ge=0, description="Zero-based index in the original thread")


class TweetEditRequest(TweetRef):
    """Replacement content for one tweet."""

    edited_text: str | None = Field(
        default=None,
        description="Full replacement text; null keeps the original text",
    )
    hidden_media: list[str] | None = Field(
        default=None,
        description="Media paths to hide; null or empty hides nothing",
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    corpus_loaded: bool
    overlay_version: int


class ConfigResponse(BaseModel):
    """Non-secret service configuration."""

    storage_backend: str = Field(
        ...,
        description="Where overlay records live. Options: 'sqlite' (local file), 'redis' (remote server).",
        json_schema_extra={"example": "sqlite", "enum": ["sqlite", "redis"]},
    )
    overlay_ttl_seconds: int = Field(
        ...,
        description="Seconds a fetched overlay snapshot is served before it is refetched. "
        "Mutations invalidate the snapshot immediately.",
        json_schema_extra={"example": 60},
    )
    log_level: str = Field(
        ...,
        description="Logging verbosity level. Options: 'DEBUG', 'INFO', 'WARNING', 'ERROR'.",
        json_schema_extra={"example": "INFO", "enum": ["DEBUG", "INFO", "WARNING", "ERROR"]},
    )
    sort_modes: list[str] = Field(
        ...,
        description="Accepted values for the `sort` query parameter of /api/threads.",
    )


def _error_status(exc: ArchiveError) -> int:
    if isinstance(exc, AuthenticationRequiredError):
        return 401
    if isinstance(exc, AuthorizationError):
        return 403
    if isinstance(exc, InvalidRequestError):
        return 400
    if isinstance(exc, (StorageError, CorpusLoadError)):
        return 503
    return 500


def create_app(config: ArchiveConfig | None = None, archive: Archive | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Service configuration, read from the environment if None
        archive: Pre-built archive, mainly for tests

    Returns:
        Configured FastAPI app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage archive lifecycle."""
        instance = archive or Archive(config or ArchiveConfig())
        await instance.__aenter__()
        try:
            await instance.load()
        except CorpusLoadError:
            # Content endpoints answer 503 until a reload succeeds
            pass
        app.state.archive = instance
        yield
        await instance.__aexit__(None, None, None)

    app = FastAPI(
        title="pearlarchive API",
        description="Browse and curate the pearl thread archive",
        version=__version__,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        bind_request_context(method=request.method, path=request.url.path)
        try:
            return await call_next(request)
        finally:
            clear_request_context()

    @app.exception_handler(ArchiveError)
    async def archive_error_handler(request: Request, exc: ArchiveError):
        status = _error_status(exc)
        if status >= 500:
            _log.error("request_failed", error=str(exc), kind=type(exc).__name__)
        return JSONResponse(
            status_code=status,
            content={
                "error": type(exc).__name__,
                "detail": str(exc),
                "retryable": exc.retryable,
            },
        )

    def get_archive(request: Request) -> Archive:
        return request.app.state.archive

    def get_principal(request: Request, archive: Archive = Depends(get_archive)) -> Principal | None:
        """Identity from the trusted headers set by the auth proxy."""
        return archive.principal_for(
            request.headers.get(archive.config.user_id_header),
            request.headers.get(archive.config.user_role_header),
        )

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check(archive: Archive = Depends(get_archive)):
        """Check API health status."""
        return HealthResponse(
            status="healthy" if archive.corpus is not None else "degraded",
            version=__version__,
            timestamp=datetime.now().isoformat(),
            corpus_loaded=archive.corpus is not None,
            overlay_version=archive.store.version,
        )

    @app.get("/api/config", response_model=ConfigResponse, tags=["System"])
    async def get_config(archive: Archive = Depends(get_archive)):
        """
        Get service configuration.

        **Configuration is set via environment variables** with the `PEARLARCHIVE_` prefix:
        - `PEARLARCHIVE_CORPUS_PATH=threads.json`
        - `PEARLARCHIVE_STORAGE_BACKEND=redis`
        - `PEARLARCHIVE_OVERLAY_TTL_SECONDS=30`
        """
        config = archive.config
        return ConfigResponse(
            storage_backend=config.storage_backend.value,
            overlay_ttl_seconds=config.overlay_ttl_seconds,
            log_level=config.log_level,
            sort_modes=[mode.value for mode in SortMode],
        )

    @app.get("/api/auth/me", tags=["Auth"])
    async def me(principal: Principal | None = Depends(get_principal)):
        """Current caller, or null when anonymous."""
        return principal.model_dump(mode="json") if principal else None

    @app.get("/api/threads", tags=["Content"])
    async def list_threads(
        search: str = Query("", description="Case-insensitive text search"),
        category: str = Query("All", description="Category label or 'All'"),
        year: str = Query("All", description="Publication year or 'All'"),
        pearls_only: bool = Query(False),
        favorites_only: bool = Query(False),
        sort: SortMode = Query(SortMode.CORPUS, description="corpus, newest or random"),
        seed: int | None = Query(None, description="Session shuffle seed for random order"),
        archive: Archive = Depends(get_archive),
        principal: Principal | None = Depends(get_principal),
    ):
        """
        Resolved, filtered and ordered threads.

        Clients wanting a stable shuffle across filter changes pass the same
        `seed` on every request of a session.
        """
        try:
            state = FilterState(
                search_query=search,
                category=category,
                year=year,
                pearls_only=pearls_only,
                favorites_only=favorites_only,
            )
        except ValidationError as e:
            raise HTTPException(
                status_code=422,
                detail=[{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()],
            )

        ordering = SessionOrdering(seed) if sort == SortMode.RANDOM else None
        view = await archive.view(state, principal, sort, ordering)
        return to_dict(view)

    @app.get("/api/threads/{thread_id}", tags=["Content"])
    async def get_thread(thread_id: str, archive: Archive = Depends(get_archive)):
        """A single resolved thread."""
        thread = await archive.get_thread(thread_id)
        if thread is None:
            raise HTTPException(status_code=404, detail=f"Thread {thread_id} not found")
        return thread.model_dump(mode="json")

    # Public overlay reads, so every visitor sees curated content

    @app.get("/api/content/deleted-items", tags=["Content"])
    async def get_deleted_items(archive: Archive = Depends(get_archive)):
        items = await archive.gateway.get_deleted_items()
        return [item.model_dump(mode="json", by_alias=True) for item in items]

    @app.get("/api/content/tweet-edits", tags=["Content"])
    async def get_tweet_edits(archive: Archive = Depends(get_archive)):
        edits = await archive.gateway.get_tweet_edits()
        return [edit.model_dump(mode="json", by_alias=True) for edit in edits]

    # Admin commands

    @app.post("/api/admin/delete-thread", tags=["Admin"])
    async def delete_thread(
        request: ThreadRef,
        archive: Archive = Depends(get_archive),
        principal: Principal | None = Depends(get_principal),
    ):
        result = await archive.gateway.delete_thread(principal, request.thread_id)
        return result.model_dump()

    @app.post("/api/admin/delete-tweet", tags=["Admin"])
    async def delete_tweet(
        request: TweetRef,
        archive: Archive = Depends(get_archive),
        principal: Principal | None = Depends(get_principal),
    ):
        result = await archive.gateway.delete_tweet(principal, request.thread_id, request.tweet_index)
        return result.model_dump()

    @app.post("/api/admin/restore-thread", tags=["Admin"])
    async def restore_thread(
        request: ThreadRef,
        archive: Archive = Depends(get_archive),
        principal: Principal | None = Depends(get_principal),
    ):
        result = await archive.gateway.restore_thread(principal, request.thread_id)
        return result.model_dump()

    @app.post("/api/admin/restore-tweet", tags=["Admin"])
    async def restore_tweet(
        request: TweetRef,
        archive: Archive = Depends(get_archive),
        principal: Principal | None = Depends(get_principal),
    ):
        result = await archive.gateway.restore_tweet(principal, request.thread_id, request.tweet_index)
        return result.model_dump()

    @app.post("/api/admin/save-tweet-edit", tags=["Admin"])
    async def save_tweet_edit(
        request: TweetEditRequest,
        archive: Archive = Depends(get_archive),
        principal: Principal | None = Depends(get_principal),
    ):
        result = await archive.gateway.save_tweet_edit(
            principal,
            request.thread_id,
            request.tweet_index,
            request.edited_text,
            request.hidden_media,
        )
        return result.model_dump()

    @app.post("/api/admin/delete-tweet-edit", tags=["Admin"])
    async def delete_tweet_edit(
        request: TweetRef,
        archive: Archive = Depends(get_archive),
        principal: Principal | None = Depends(get_principal),
    ):
        result = await archive.gateway.delete_tweet_edit(principal, request.thread_id, request.tweet_index)
        return result.model_dump()

    # Favorites, scoped to the caller

    @app.get("/api/favorites", tags=["Favorites"])
    async def list_favorites(
        archive: Archive = Depends(get_archive),
        principal: Principal | None = Depends(get_principal),
    ):
        return await archive.gateway.list_favorites(principal)

    @app.post("/api/favorites/add", tags=["Favorites"])
    async def add_favorite(
        request: ThreadRef,
        archive: Archive = Depends(get_archive),
        principal: Principal | None = Depends(get_principal),
    ):
        result = await archive.gateway.add_favorite(principal, request.thread_id)
        return result.model_dump()

    @app.post("/api/favorites/remove", tags=["Favorites"])
    async def remove_favorite(
        request: ThreadRef,
        archive: Archive = Depends(get_archive),
        principal: Principal | None = Depends(get_principal),
    ):
        result = await archive.gateway.remove_favorite(principal, request.thread_id)
        return result.model_dump()

    @app.post("/api/favorites/toggle", tags=["Favorites"])
    async def toggle_favorite(
        request: ThreadRef,
        archive: Archive = Depends(get_archive),
        principal: Principal | None = Depends(get_principal),
    ):
        favorite = await archive.gateway.toggle_favorite(principal, request.thread_id)
        return {"success": True, "favorite": favorite}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
