import os
import asyncio
import logging
from typing import Optional, Callable, Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from classes.backend import Backend
from classes.errors import IngestionError, MissionControlError, StoreError, StoreTimeoutError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger("mission_control")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
PUBLIC_DIR = os.getenv("PUBLIC_DIR", "public")
STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "10"))


class LaunchRequest(BaseModel):
    # all optional here so a missing field is reported as missing_field, not a schema error
    mission: Optional[str] = None
    rocket: Optional[str] = None
    launchDate: Optional[str] = None
    target: Optional[str] = None


def _http_error(e: MissionControlError, store_message: str) -> HTTPException:
    message = str(e)
    if isinstance(e, StoreError) and not isinstance(e, StoreTimeoutError):
        # driver details stay in the log
        logger.error("%s: %s", store_message, e)
        message = store_message
    return HTTPException(status_code=e.status_code, detail={"error": message, "code": e.code})


def create_app(
    backend: Backend,
    public_dir: Optional[str] = None,
    store_timeout: Optional[float] = None,
) -> FastAPI:
    app = FastAPI(title="Mission Control API")
    timeout = store_timeout if store_timeout is not None else STORE_TIMEOUT_SECONDS

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def run_store_call(fn: Callable[..., Any], *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise StoreTimeoutError(f"Store call {fn.__name__} exceeded {timeout}s") from e

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        logger.debug("Rejected request to %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=400,
            content={"detail": {"error": "Invalid request", "code": "invalid_request"}},
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/planets")
    async def get_planets():
        try:
            return await run_store_call(backend.planets.list_planets)
        except MissionControlError as e:
            raise _http_error(e, "Failed to fetch planets")

    @app.get("/launches")
    async def get_launches():
        try:
            return await run_store_call(backend.launches.list_launches)
        except MissionControlError as e:
            raise _http_error(e, "Failed to fetch launches")

    @app.post("/launches", status_code=201)
    async def add_launch(launch: Optional[LaunchRequest] = None):
        candidate = launch.model_dump() if launch is not None else {}
        try:
            return await run_store_call(backend.launches.create_launch, candidate)
        except MissionControlError as e:
            raise _http_error(e, "Failed to add launch")

    @app.delete("/launches/{flight_number}")
    async def abort_launch(flight_number: int):
        try:
            await run_store_call(backend.launches.abort_launch, flight_number)
        except MissionControlError as e:
            raise _http_error(e, "Failed to abort launch")
        return {"ok": True}

    # built client, mounted last so the API routes win
    public_dir = public_dir if public_dir is not None else PUBLIC_DIR
    if public_dir and os.path.isdir(public_dir):
        app.mount("/", StaticFiles(directory=public_dir, html=True), name="public")

    return app


def main() -> None:
    backend = Backend()

    # phase 1: planets must be in place before any request is accepted
    try:
        count = backend.startup()
    except (IngestionError, StoreError) as e:
        logger.exception("Startup aborted, planet set could not be loaded: %s", e)
        raise SystemExit(1)
    logger.info("%d habitable planets ready, starting HTTP server on %s:%d", count, HOST, PORT)

    # phase 2
    import uvicorn
    uvicorn.run(create_app(backend), host=HOST, port=PORT)


if __name__ == "__main__":
    main()
