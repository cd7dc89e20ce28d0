"""
HTTP front end for the campaign redirector.

Endpoints:
- GET  /                      (Health check)
- GET  /tracking.js           (Client-side view tracker)
- POST /hooks/campaign/view   (View callback from the tracker)
- GET  /{key}                 (Campaign redirect)
"""

from contextlib import asynccontextmanager
from importlib import resources
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, RedirectResponse, Response
from redis.exceptions import RedisError

from .config import RedirectorSettings, get_settings
from .logging_config import configure_logging
from .errors import CampaignNotFound, NoEligiblePage, PersistenceFailure
from .infrastructure.campaign_store import CampaignStore
from .service import RedirectService

logger = structlog.get_logger()

NOT_FOUND_TEXT = "Campaign not found"
TRACKER_ASSET = "tracking.js"
APP_URL_PLACEHOLDER = "{{APP_URL}}"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the store's connection pool for the lifetime of the app.

    An unreachable Redis does not stop startup: the pool reconnects per
    command, so requests answer "not found" or 500 until it is back.
    """
    store: CampaignStore = app.state.store
    owns_connection = not store.connected
    if owns_connection:
        try:
            await store.connect()
        except RedisError as e:
            logger.warning("campaign_store.unreachable", error=str(e))
    try:
        yield
    finally:
        if owns_connection:
            await store.disconnect()


def get_service(request: Request) -> RedirectService:
    return request.app.state.service


def load_tracker_script(base_url: str) -> Optional[bytes]:
    """Read the tracker asset with the service base URL filled in."""
    try:
        asset = resources.files("redirector") / "assets" / TRACKER_ASSET
        source = asset.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    return source.replace(APP_URL_PLACEHOLDER, base_url.rstrip("/")).encode("utf-8")


def create_app(
    settings: Optional[RedirectorSettings] = None,
    store: Optional[CampaignStore] = None,
) -> FastAPI:
    """
    Create the redirector app.

    Args:
        settings: Service settings (default: from environment)
        store: Campaign store to use (default: built from settings and
            connected on startup)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, json_logs=settings.log_json)
    store = store or CampaignStore.from_settings(settings)

    app = FastAPI(
        title="Campaign Redirector",
        description="Weighted round-robin traffic splitting for campaign links",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.service = RedirectService(store, timezone=settings.event_timezone)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["Origin", "Content-Type", "Accept"],
    )

    @app.exception_handler(CampaignNotFound)
    @app.exception_handler(NoEligiblePage)
    async def not_found_handler(request: Request, exc: Exception):
        # 200 on purpose: crawlers must not learn which keys exist
        logger.info("redirect.not_found", path=request.url.path, reason=str(exc))
        return PlainTextResponse(NOT_FOUND_TEXT, status_code=200)

    @app.exception_handler(PersistenceFailure)
    async def persistence_failure_handler(request: Request, exc: PersistenceFailure):
        logger.error("redirect.persistence_failure", key=exc.key, reason=exc.reason)
        return PlainTextResponse("Internal Server Error", status_code=500)

    @app.get("/")
    async def root():
        """Health check."""
        return {"Status": "OK"}

    @app.get("/tracking.js")
    async def tracking():
        """Tracker script posting view callbacks back to this service."""
        script = load_tracker_script(settings.http_domain)
        if script is None:
            return PlainTextResponse("Not found", status_code=404)
        return Response(
            content=script,
            media_type="application/javascript; charset=utf-8",
        )

    @app.post("/hooks/campaign/view")
    async def view(request: Request, service: RedirectService = Depends(get_service)):
        """Record a "view" analytics event for the posted ``intoid``."""
        form = await request.form()
        params = [(name, value) for name, value in form.multi_items() if isinstance(value, str)]
        intoid = form.get("intoid")
        await service.record_view(intoid if isinstance(intoid, str) else None, params)
        return PlainTextResponse("OK")

    @app.get("/{key}")
    async def redirect(
        key: str,
        request: Request,
        service: RedirectService = Depends(get_service),
    ):
        """Dispatch a page for the campaign and redirect to it."""
        result = await service.redirect(key, request.query_params.multi_items())

        logger.info(
            "redirect.dispatched",
            key=key,
            page_id=result.page.id,
            input_url=str(request.url),
            output_url=result.url,
            event_queued=result.event_queued,
        )
        return RedirectResponse(result.url, status_code=302)

    return app


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = False):
    """Run the redirector with uvicorn."""
    import uvicorn
    uvicorn.run(
        "redirector.server:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )
