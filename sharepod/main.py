import logging
import uuid
from time import monotonic

from fastapi import FastAPI, Request
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from sharepod.api.shares import router as shares_router
from sharepod.errors import register_error_handlers
from sharepod.logging import configure_logging
from sharepod.metrics import observe_request
from sharepod.services.object_storage import ensure_share_bucket

API_PREFIX = "/api/v1"

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="SharePod API")
register_error_handlers(app)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    started = monotonic()
    response = await call_next(request)
    route = request.scope.get("route")
    path = getattr(route, "path", None) or "unmatched"
    observe_request(request.method, path, response.status_code, monotonic() - started)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(shares_router, prefix=API_PREFIX)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@app.on_event("startup")
def _ensure_bucket():
    try:
        ensure_share_bucket()
    except Exception:
        logger.exception("Failed to ensure storage bucket during startup")
