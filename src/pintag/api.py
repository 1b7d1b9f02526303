"""FastAPI application entry point."""

import logging
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from pintag.database import SessionLocal, init_db
from pintag.logging_config import configure_logging
from pintag.page_guard import page_redirect
from pintag.ratelimit import limiter
from pintag.settings import settings

# Import all routers
from pintag.routers import (
    auth,
    admin_users,
    catalog,
    images,
    uploads,
    dashboard,
    albums,
)

app = FastAPI(
    title="Pintag",
    description="Collaborative photo tagging with people pins, comments and review",
    version="0.1.0"
)

logger = logging.getLogger(__name__)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.on_event("startup")
async def on_startup():
    configure_logging(settings.debug)
    if settings.is_development and settings.database_url.startswith("sqlite"):
        # Local sqlite databases are created on demand; other databases use alembic.
        init_db()
    logger.info("Pintag API started (environment=%s, storage=%s)", settings.environment, settings.storage_backend)


# Add CORS middleware
_allowed_origins = [settings.app_url]
if settings.is_development:
    _allowed_origins += [
        "http://localhost:3000",
        "http://localhost:8080",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8080",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def page_guard(request: Request, call_next):
    """Send signed-out browsers to /login and signed-in ones away from it."""
    if request.method == "GET":
        has_token = bool(request.cookies.get(settings.auth_cookie_name))
        target = page_redirect(request.url.path, has_token)
        if target:
            return RedirectResponse(url=target, status_code=307)
    return await call_next(request)


# Register all routers
app.include_router(auth.router)
app.include_router(admin_users.router)
app.include_router(catalog.persons_router)
app.include_router(catalog.locations_router)
app.include_router(catalog.occasions_router)
app.include_router(images.router)
app.include_router(uploads.router)
app.include_router(dashboard.router)
app.include_router(albums.router)

# Static file paths
static_dir = Path(__file__).parent / "static"


@app.get("/health")
async def health_check():
    """Health check endpoint with DB connectivity verification."""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy"}
    except Exception as exc:
        raise HTTPException(status_code=503, detail=f"Database unavailable: {exc}")
    finally:
        db.close()


if static_dir.exists():
    app.mount("/static", StaticFiles(directory=static_dir), name="static")


# Page catch-all - must be LAST route defined
@app.get("/{full_path:path}", include_in_schema=False)
async def page_catch_all(full_path: str):
    """Serve the front-end shell for any unmatched page route."""
    if full_path.startswith("api/"):
        raise HTTPException(status_code=404, detail="Not found")
    index_file = static_dir / "index.html"
    if index_file.exists():
        return HTMLResponse(content=index_file.read_text())
    return HTMLResponse(content="<h1>Pintag</h1><p>Frontend not built</p>", status_code=200)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pintag.api:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
