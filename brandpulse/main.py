import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from brandpulse.errors import BrandPulseError
from brandpulse.routes.collect import router as collect_router
from brandpulse.routes.dashboard import router as dashboard_router
from brandpulse.routes.mentions import router as mentions_router
from brandpulse.routes.reports import router as reports_router
from brandpulse.routes.search_queries import router as search_queries_router
from brandpulse.routes.tags import router as tags_router
from brandpulse.services.llm import SentimentClassifier
from brandpulse.services.synthesizer import MentionSynthesizer
from brandpulse.storage.base import Storage, build_storage
from brandpulse.utils.config import CORS_ORIGINS, DATABASE_URL, LOG_LEVEL

logger = logging.getLogger(__name__)


def _field_errors(exc: RequestValidationError):
    out = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        out.append({"field": ".".join(loc), "message": err.get("msg", "invalid")})
    return out


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BrandPulseError)
    async def brandpulse_error(request: Request, exc: BrandPulseError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": _field_errors(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(
    storage: Optional[Storage] = None,
    classifier: Optional[SentimentClassifier] = None,
    synthesizer: Optional[MentionSynthesizer] = None,
) -> FastAPI:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create tables (dev-only)
        await app.state.storage.init()
        yield
        await app.state.storage.close()

    app = FastAPI(title="BrandPulse API", lifespan=lifespan)
    app.state.storage = storage or build_storage(DATABASE_URL)
    app.state.classifier = classifier or SentimentClassifier()
    app.state.synthesizer = synthesizer or MentionSynthesizer()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    for router in (
        mentions_router,
        tags_router,
        search_queries_router,
        collect_router,
        dashboard_router,
        reports_router,
    ):
        app.include_router(router, prefix="/api")

    return app


# uvicorn brandpulse.main:create_app --factory
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("brandpulse.main:create_app", factory=True, host="0.0.0.0", port=8000)
