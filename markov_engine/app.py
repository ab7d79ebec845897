"""
Markov Engine Service
Main application entry point

The app is the host for MarkovSystem: it owns the generator's lifecycle
(startup / frame ticks / shutdown) and exposes its operations over HTTP.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from markov_engine.config import Settings, settings as default_settings
from markov_engine.services.markov_system import MarkovSystem
from markov_engine.utils.logger import setup_logger

# Setup logging
logger = setup_logger(__name__)


async def frame_loop(system: MarkovSystem, interval_ms: int):
    """Drive begin/update/end frame ticks so queued training makes progress"""
    interval = max(interval_ms, 1) / 1000.0
    while system.ready:
        system.run_frame()
        await asyncio.sleep(interval)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager for the Markov system"""
        logger.info("[BOOT] Starting Markov Engine...")
        system = MarkovSystem(settings.markov_config())
        ticker = None
        try:
            system.startup()
            app.state.markov_system = system
            ticker = asyncio.create_task(frame_loop(system, settings.FRAME_INTERVAL_MS))
            logger.info(f"[BOOT] Markov Engine ready (seed={system.seed})")
            yield
        except Exception as e:
            logger.error(f"[ERR] Failed to initialize: {e}", exc_info=True)
            raise
        finally:
            logger.info("[SHUTDOWN] Cleaning up...")
            if ticker is not None:
                ticker.cancel()
                try:
                    await ticker
                except asyncio.CancelledError:
                    pass
            if system.ready:
                system.shutdown()
            app.state.markov_system = None
            logger.info("[SHUTDOWN] Markov Engine stopped")

    app = FastAPI(
        title="Markov Engine",
        description="Markov chain text generator with frame-budgeted training",
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"[ERR] Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "error": {
                    "code": "MARKOV_SERVICE_ERROR",
                    "message": "Internal server error occurred",
                    "details": {"type": type(exc).__name__},
                },
            },
        )

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint"""
        system = getattr(request.app.state, "markov_system", None)
        return {
            "ok": True,
            "data": {
                "status": "healthy" if system is not None and system.ready else "starting",
                "service": settings.SERVICE_NAME,
                "state": system.state.value if system is not None else "uninitialized",
                "models": len(system.registry) if system is not None and system.ready else 0,
                "pending_jobs": len(system.pending_jobs()) if system is not None and system.ready else 0,
            },
        }

    from markov_engine.api.routers import markov_router

    app.include_router(markov_router.router, prefix="/markov", tags=["Markov"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "markov_engine.app:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.DEBUG,
        log_level=default_settings.LOG_LEVEL.lower(),
    )
