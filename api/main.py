import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cadence import __version__
from cadence.errors import LifecycleError
from cadence.settings import API_DEBUG, settings
from .entities import router as entities_router

logging.basicConfig(level="DEBUG" if API_DEBUG else settings.log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Cadence Lifecycle API",
    version=__version__,
    description="HTTP layer over the lifecycle engine for survey batches and governance terms.",
)

# --- CORS ----------------------------------------------------------
# Dev origins for the admin front-end; tighten for production.
origins = [
    "http://localhost:5173",    # Vite dev server default port
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)

# --- Error mapping ----------------------------------------------------------
STATUS_CODES = {
    "invalid_transition": 400,
    "transition_denied": 400,
    "active_conflict": 409,
    "date_overlap": 409,
    "stale_state": 409,
    "validation_error": 422,
}


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc.kind}: {exc.message}")
    return JSONResponse(status_code=STATUS_CODES.get(exc.kind, 400), content={"detail": exc.to_dict()})


# ---------- health-check ----------
@app.get("/")
def root():
    return {"status": "ok", "msg": "Cadence API is alive"}


# --- Include Routers ----------------------------------------------------------
app.include_router(entities_router)
