"""FastAPI application entrypoint for the vpnDns reconciler."""
from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from vpnDns.api.routes import claims, health
from vpnDns.api.services import ReconcilerServices
from vpnDns.config import ReconcilerConfig
from vpnDns.logging_config import reset_request_id, set_request_id, setup_logging

logger = setup_logging("api")


def create_app(
    services: Optional[ReconcilerServices] = None,
    config: Optional[ReconcilerConfig] = None,
) -> FastAPI:
    """
    Build the reconciler app.

    When ``services`` is given it is used as-is and left open on shutdown
    (the caller owns it). Otherwise services are built from ``config`` (or
    the environment) at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting vpnDns reconciler", extra={"state": "startup"})
        owned = None
        if app.state.services is None:
            owned = ReconcilerServices.from_config(config or ReconcilerConfig.from_env())
            app.state.services = owned
        logger.info("Reconciler startup complete", extra={"state": "ready"})
        try:
            yield
        finally:
            logger.info("Shutting down vpnDns reconciler", extra={"state": "shutdown"})
            if owned is not None:
                await owned.close()
                app.state.services = None
            logger.info("Reconciler shutdown complete", extra={"state": "stopped"})

    app = FastAPI(title="vpnDns-reconciler", version="0.1.0", lifespan=lifespan)
    app.state.services = services

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Callable) -> Response:
        """Log all HTTP requests with timing and outcome."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        token = set_request_id(request_id)
        start_time = time.time()

        logger.info(
            "Incoming request",
            extra={
                "url": request.url.path,
                "method": request.method,
                "client_host": request.client.host if request.client else None,
            },
        )
        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                extra={
                    "url": request.url.path,
                    "status_code": response.status_code,
                    "duration": round((time.time() - start_time) * 1000, 2),
                    "outcome": "success" if response.status_code < 400 else "error",
                },
            )
            response.headers["X-Request-ID"] = request_id
            return response
        except Exception as exc:
            logger.error(
                f"Request failed: {exc}",
                exc_info=True,
                extra={
                    "url": request.url.path,
                    "duration": round((time.time() - start_time) * 1000, 2),
                    "outcome": "exception",
                    "error_type": type(exc).__name__,
                },
            )
            raise
        finally:
            reset_request_id(token)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Unexpected failures get the same opaque body as rejected claims."""
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"message": "error"})

    app.include_router(claims.router)
    app.include_router(health.router)

    @app.get("/")
    async def root():
        return {"status": "ok", "service": "vpnDns-reconciler"}

    return app


def main() -> None:
    import uvicorn

    config = ReconcilerConfig.from_env()
    uvicorn.run(create_app(config=config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
