import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.deps import get_scheduler, get_wordpress_client
from app.security import enforce_rate_limit, require_api_key
from routes.content import router as content_router
from routes.videos import router as videos_router
from services.wordpress import UpstreamError

logger = logging.getLogger(__name__)

API_TITLE = "Recipe Reels API"
API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    scheduler = get_scheduler() if settings.scheduler_enabled else None
    if scheduler is not None:
        scheduler.start(run_now=settings.scheduler_run_on_startup)
    else:
        logger.info("[main] Background video scheduler disabled")
    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()
        await get_wordpress_client().aclose()


app = FastAPI(title=API_TITLE, version=API_VERSION, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().allowed_origins),
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization", "x-api-key"],
)

api_dependencies = [Depends(enforce_rate_limit), Depends(require_api_key)]
app.include_router(content_router, prefix="/api", dependencies=api_dependencies)
app.include_router(videos_router, prefix="/api", dependencies=api_dependencies)


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    logger.error("[main] Upstream failure on %s: %s", request.url.path, exc.message)
    resource = request.url.path.rstrip("/").rsplit("/", 1)[-1] or "content"
    detail = exc.message if get_settings().is_development else f"Failed to fetch {resource}"
    return JSONResponse(
        status_code=exc.status_code if 400 <= exc.status_code < 600 else 502,
        content={"error": f"Failed to fetch {resource}", "message": detail},
    )


@app.get("/")
def index() -> dict[str, Any]:
    return {
        "message": API_TITLE,
        "endpoints": {
            "posts": "/api/posts",
            "pages": "/api/pages",
            "categories": "/api/categories",
            "comments": "/api/comments",
            "videos": "/api/videos",
        },
    }


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/api/docs")
def api_docs() -> dict[str, Any]:
    settings = get_settings()
    return {
        "version": API_VERSION,
        "description": API_TITLE,
        "endpoints": {
            "/api/posts": {
                "methods": ["GET"],
                "parameters": {"per_page": "number (optional)", "generate_video": "boolean (optional)"},
                "description": "Fetch blog posts with enhanced media and recipe data",
            },
            "/api/categories": {"methods": ["GET"], "parameters": {}, "description": "Fetch all categories with icons and metadata"},
            "/api/pages": {"methods": ["GET"], "parameters": {}, "description": "Fetch static pages"},
            "/api/comments": {"methods": ["GET"], "parameters": {}, "description": "Fetch post comments"},
            "/api/videos": {
                "methods": ["POST"],
                "parameters": {"title": "string", "images": "array of images", "itemId": "number (optional)"},
                "description": "Generate a vertical slideshow video from a list of images",
            },
            "/api/videos/scheduler": {"methods": ["GET"], "parameters": {}, "description": "Background generation status"},
        },
        "authentication": {"type": "API Key", "headerName": "x-api-key"},
        "rateLimiting": {
            "windowMs": settings.rate_limit_window_ms,
            "maxRequests": settings.rate_limit_max_requests,
        },
    }
