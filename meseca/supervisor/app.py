"""
HTTP trigger for the process supervisor.

The start sequence runs once when the app starts and again on every
``GET /start-all``. Any other path is served as a static web UI from the
launcher's static directory.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from meseca import __version__
from meseca.config import Settings, get_settings
from meseca.supervisor.process_supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)


def build_supervisor(settings: Settings) -> ProcessSupervisor:
    return ProcessSupervisor(settings.supervised_services, cwd=settings.supervisor_cwd)


def launcher_static_dir(settings: Settings) -> Path:
    """Directory served as the launcher web UI."""
    return Path(settings.launcher_static_dir or settings.supervisor_cwd or os.getcwd())


def create_launcher_app(
    settings: Optional[Settings] = None,
    supervisor: Optional[ProcessSupervisor] = None,
    autostart: bool = True
) -> FastAPI:
    """
    Create the supervisor trigger application.

    Args:
        settings: Settings to use (defaults to environment settings)
        supervisor: Pre-built supervisor (used by tests)
        autostart: Run the start sequence when the app starts
    """
    settings = settings or get_settings()
    supervisor = supervisor or build_supervisor(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Launcher listening on http://{settings.launcher_host}:{settings.launcher_port}")
        startup_task = asyncio.create_task(supervisor.start_all()) if autostart else None

        yield

        if startup_task is not None and not startup_task.done():
            startup_task.cancel()
            await asyncio.gather(startup_task, return_exceptions=True)
        logger.info("Stopping supervised services...")
        await supervisor.stop_all()

    app = FastAPI(
        title="Meseca Launcher",
        description="Starts the local voice backends",
        version=__version__,
        lifespan=lifespan
    )
    app.state.supervisor = supervisor
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.get("/start-all")
    async def start_all(request: Request):
        """Run the start sequence for every configured service."""
        await request.app.state.supervisor.start_all()
        return {"message": "Launch requested"}

    @app.get("/services")
    async def list_services(request: Request):
        """Per-service state."""
        return {"services": request.app.state.supervisor.snapshot()}

    static_dir = launcher_static_dir(settings)
    if static_dir.is_dir():
        # Mounted last so the routes above take precedence
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="ui")
        logger.info(f"Launcher web UI (static): {static_dir}")

    return app


def main():
    """Run the launcher with uvicorn."""
    import uvicorn

    from meseca.utils.logging_config import setup_logging

    settings = get_settings()
    setup_logging(settings)
    uvicorn.run(
        create_launcher_app(settings),
        host=settings.launcher_host,
        port=settings.launcher_port,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
