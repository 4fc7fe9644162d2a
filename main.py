import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings
from database import MongoVideoStore, VideoStore
from errors import NotFoundError, VideoShareError
from logging_config import setup_logging
from videos import VideoService

logger = logging.getLogger(__name__)

# First path segments that belong to the JSON API and never fall back to index.html
API_SEGMENTS = {"api", "videos", "health"}


def get_service(request: Request) -> VideoService:
    return request.app.state.service


def require_creator_key(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="x-api-key"),
):
    """Gate for creator routes. Open when CREATOR_API_KEY is not set."""
    get_service(request).authorize(x_api_key)


def create_video_routes() -> APIRouter:
    router = APIRouter(tags=["videos"])

    @router.get("/health")
    def health(service: VideoService = Depends(get_service)):
        return service.health()

    @router.get("/videos", response_model=List[dict])
    def list_videos(service: VideoService = Depends(get_service)):
        """All videos, newest first"""
        return service.list_videos()

    @router.post("/videos", status_code=201, dependencies=[Depends(require_creator_key)])
    def create_video(payload: Any = Body(None), service: VideoService = Depends(get_service)):
        """
        Create a video from its metadata.
        - title and playbackUrl (or url) are required
        - ageRating is accepted for age
        """
        return service.create_video(payload)

    @router.delete("/videos", dependencies=[Depends(require_creator_key)])
    def bulk_delete_videos(
        provider: Optional[str] = Query(None, description="Provider filter, only 'youtube' is supported"),
        service: VideoService = Depends(get_service),
    ):
        deleted = service.bulk_delete(provider)
        return {"ok": True, "deleted": deleted}

    @router.get("/videos/{video_id}")
    def get_video(video_id: str, service: VideoService = Depends(get_service)):
        return service.get_video(video_id)

    @router.delete("/videos/{video_id}", dependencies=[Depends(require_creator_key)])
    def delete_video(video_id: str, service: VideoService = Depends(get_service)):
        service.delete_video(video_id)
        return {"ok": True, "id": video_id}

    @router.post("/videos/{video_id}/comments")
    def add_comment(video_id: str, payload: Any = Body(None), service: VideoService = Depends(get_service)):
        return service.add_comment(video_id, payload)

    @router.post("/videos/{video_id}/ratings")
    def add_rating(video_id: str, payload: Any = Body(None), service: VideoService = Depends(get_service)):
        return service.add_rating(video_id, payload)

    return router


def _static_roots(settings: Settings) -> List[Path]:
    roots = []
    for name in settings.static_dirs:
        path = Path(name).resolve()
        if path.is_dir():
            roots.append(path)
    return roots


def _find_static(roots: List[Path], relative: str) -> Optional[Path]:
    for root in roots:
        candidate = (root / relative).resolve()
        # Refuse anything that escapes the static root
        if candidate != root and root not in candidate.parents:
            continue
        if candidate.is_file():
            return candidate
    return None


def register_static_routes(app: FastAPI, settings: Settings) -> None:
    """Front-end bundle. Must be registered after every API route."""
    roots = _static_roots(settings)

    @app.get("/", include_in_schema=False)
    def read_root():
        index = _find_static(roots, "index.html")
        if index:
            return FileResponse(index)
        return {"message": "VideoShare backend running"}

    @app.get("/{full_path:path}", include_in_schema=False)
    def static_fallback(full_path: str):
        first_segment = full_path.strip("/").split("/", 1)[0]
        if first_segment in API_SEGMENTS:
            raise NotFoundError(f"No route for /{full_path}")
        found = _find_static(roots, full_path)
        if found:
            return FileResponse(found)
        # Client-side routes get the SPA shell
        index = _find_static(roots, "index.html")
        if index:
            return FileResponse(index)
        raise NotFoundError("File not found")


def register_error_handlers(app: FastAPI) -> None:
    def error_response(status_code: int, code: str, message: str) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"ok": False, "error": code, "message": message})

    @app.exception_handler(VideoShareError)
    async def handle_videoshare_error(request: Request, exc: VideoShareError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.debug(f"{request.method} {request.url.path} rejected: {exc.code}")
        return error_response(exc.status_code, exc.code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return error_response(400, "invalid_request", "Malformed request")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, "http_error", str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} crashed: {exc}")
        return error_response(500, "store_error", "Internal error")


def create_app(settings: Optional[Settings] = None, store: Optional[VideoStore] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if store is None:
            setup_logging(settings.log_level, settings.log_file)
            mongo = MongoVideoStore(
                settings.database_url,
                settings.database_name,
                collection=settings.collection,
                timeout_ms=settings.db_timeout_ms,
            )
            app.state.service = VideoService(mongo, settings.api_key)
            logger.info(f"Using database {settings.database_name}.{settings.collection}")
            if not settings.auth_enabled:
                logger.warning("CREATOR_API_KEY not set, creator routes are open")
        try:
            yield
        finally:
            app.state.service.store.close()

    app = FastAPI(title="VideoShare API", lifespan=lifespan)
    app.state.settings = settings
    if store is not None:
        app.state.service = VideoService(store, settings.api_key)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # API first, then the /api-less aliases older clients call, then static files
    router = create_video_routes()
    app.include_router(router, prefix="/api")
    app.include_router(router)
    register_static_routes(app, settings)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)
