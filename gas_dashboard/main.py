import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gas_dashboard.api.routes import router as api_router
from gas_dashboard.config import Settings, get_settings
from gas_dashboard.series.store import UnknownSeriesError
from gas_dashboard.services.query import InvalidRequestError
from gas_dashboard.sources.base import SampleSource
from gas_dashboard.state import build_state

log = logging.getLogger("gas_dashboard")


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def create_app(settings: Optional[Settings] = None, source: Optional[SampleSource] = None) -> FastAPI:
    settings = settings or get_settings()
    state = build_state(settings, source=source)

    app = FastAPI(title="Gas Dashboard API", version="0.1.0")
    app.state.dashboard = state
    app.include_router(api_router)

    @app.on_event("startup")
    async def _startup():
        # Gas (every 15s) and ETH/USD (every 30s) generators, each with an immediate first tick.
        await state.start()

    @app.on_event("shutdown")
    async def _shutdown():
        await state.stop()

    @app.exception_handler(InvalidRequestError)
    async def _invalid_request(request: Request, exc: InvalidRequestError):
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        return _error(400, f"{field}: {message}" if field else message)

    @app.exception_handler(UnknownSeriesError)
    async def _unknown_series(request: Request, exc: UnknownSeriesError):
        return _error(404, str(exc))

    @app.exception_handler(Exception)
    async def _internal(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "app_env": settings.app_env,
            "source_config": settings.sample_source,
            "source_loaded": state.source.__class__.__name__,
            "chains": settings.chains,
            "subscribers": state.fanout.subscriber_count,
            "generators": {
                "gas": state.gas_generator.running,
                "price": state.price_generator.running,
            },
        }

    return app


settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app(settings)
