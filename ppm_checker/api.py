"""HTTP control surface for a running checker."""

from fastapi import BackgroundTasks, FastAPI
from fastapi.responses import JSONResponse

from . import __version__
from .checker import PPMChecker


def create_app(checker: PPMChecker, autostart: bool = True) -> FastAPI:
    """Build the FastAPI app exposing manual triggers for ``checker``."""
    app = FastAPI(title="PPM Checker", version=__version__)
    app.state.checker = checker

    if autostart:
        @app.on_event("startup")
        async def startup_event():
            await checker.start()

        @app.on_event("shutdown")
        async def shutdown_event():
            checker.stop()

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"status": "healthy", "service": "ppm-checker", "running": checker.running}

    @app.get("/status")
    async def get_status():
        """Get checker status."""
        return checker.status()

    @app.post("/checker/start")
    async def start_checker():
        """Start the periodic check."""
        started = await checker.start()
        if not started:
            return JSONResponse(content={"error": "Checker not started", "running": checker.running}, status_code=409)
        return {"message": "Checker started", "status": "running"}

    @app.post("/checker/stop")
    async def stop_checker():
        """Stop the periodic check and release the host."""
        checker.stop()
        return {"message": "Checker stopped", "status": "stopped"}

    @app.post("/run/check")
    async def run_check(background_tasks: BackgroundTasks):
        """Trigger a PPM check manually."""
        background_tasks.add_task(checker.run_check_now)
        return {"message": "PPM check started", "status": "running"}

    @app.post("/run/stop-cluster")
    async def run_stop_cluster():
        """Send /stop immediately."""
        sent = await checker.send_stop_now()
        if not sent:
            return JSONResponse(content={"error": "Failed to send /stop"}, status_code=503)
        return {"message": "/stop sent"}

    @app.post("/run/start-cluster")
    async def run_start_cluster():
        """Send /start immediately."""
        sent = await checker.send_start_now()
        if not sent:
            return JSONResponse(content={"error": "Failed to send /start"}, status_code=503)
        return {"message": "/start sent"}

    return app
