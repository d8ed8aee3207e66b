"""FastAPI application entry point.

The application is the host process: its lifespan loads the user config,
wires the services together and runs the tick loop that drives the
:class:`~honorific.updater.Updater`.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.sessions import SessionMiddleware

from honorific.config import get_settings
from honorific.idle import system_idle_timer
from honorific.notify import ConsoleNotifier
from honorific.polling import SpotifyPollingService
from honorific.rendering import TitleRenderingService
from honorific.sink import HttpTitleSink, LoggingTitleSink
from honorific.store import ConfigStore, load_or_create_config
from honorific.tokens import TokenManager
from honorific.updater import Updater
from titlecore.templates import TemplateCache

logger = logging.getLogger(__name__)


async def run_ticks(updater: Updater, interval: float) -> None:
    """Call ``updater.on_tick`` every *interval* seconds with the real delta."""
    last = time.monotonic()
    while True:
        await asyncio.sleep(interval)
        now = time.monotonic()
        updater.on_tick(now - last)
        last = now


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_or_create_config(ConfigStore(settings.config_abs_path))
    notifier = ConsoleNotifier()
    template_cache = TemplateCache()
    token_manager = TokenManager(config, notifier)
    polling = SpotifyPollingService(config, token_manager, notifier)
    renderer = TitleRenderingService(template_cache, notifier)
    sink = HttpTitleSink(settings.sink_url) if settings.sink_url else LoggingTitleSink()
    updater = Updater(
        config,
        polling,
        renderer,
        template_cache,
        sink,
        notifier,
        system_idle_timer(),
    )

    app.state.config = config
    app.state.token_manager = token_manager
    app.state.updater = updater

    tick_task = asyncio.create_task(run_ticks(updater, settings.tick_interval))
    logger.info("Config loaded from %s; ticking every %.3fs", settings.config_abs_path, settings.tick_interval)
    yield
    tick_task.cancel()
    try:
        await tick_task
    except asyncio.CancelledError:
        pass
    updater.dispose()
    if isinstance(sink, HttpTitleSink):
        sink.close()
    logger.info("Updater stopped")


app = FastAPI(
    title="spotify-honorific",
    version="0.1.0",
    lifespan=lifespan,
)

# Session middleware (signed cookie holding the PKCE verifier).
app.add_middleware(SessionMiddleware, secret_key=get_settings().secret_key)

# Routers
from honorific.auth import router as auth_router  # noqa: E402
from honorific.routes_configs import router as configs_router  # noqa: E402

app.include_router(auth_router)
app.include_router(configs_router)


@app.get("/health")
async def health():
    """Simple health-check endpoint."""
    return JSONResponse({"status": "ok", "version": app.version})


@app.get("/stats", response_class=PlainTextResponse)
async def stats(request: Request):
    """Human-readable performance report."""
    return request.app.state.updater.get_performance_stats()


@app.get("/config/validate")
def validate_config(request: Request):
    """Configuration problems as a JSON list (empty when valid)."""
    errors = request.app.state.config.validate_all()
    return JSONResponse({"valid": not errors, "errors": errors})
