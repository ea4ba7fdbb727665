# main.py
from dotenv import load_dotenv
load_dotenv()

import os
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from pharmsearch.presentation.routers import router as v1_router, register_exception_handlers
from pharmsearch.presentation.health import router as health_router

app = FastAPI(
    title="PharmSearch",
    version=os.getenv("APP_VERSION", "0.1.0"),
)

# --- logging config must come first ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

# own request logger, not 'uvicorn.access'
app_logger = logging.getLogger("pharmsearch.request")

@app.middleware("http")
async def log_requests(request: Request, call_next):
    app_logger.info(f"Incoming {request.method} {request.url.path}")
    try:
        response = await call_next(request)
        app_logger.info(f"Completed {request.method} {request.url.path} -> {response.status_code}")
        return response
    except Exception:
        app_logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        raise

# ─────────────────────────────────────────────────────────────
# CORS (env: CORS_ALLOW_ORIGINS="https://foo.com,https://bar.com")
# ─────────────────────────────────────────────────────────────
raw_origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
allow_origins = [o.strip().rstrip("/") for o in raw_origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# ─────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────
register_exception_handlers(app)
app.include_router(v1_router, tags=["search"])
app.include_router(health_router, tags=["health"])

@app.get("/")
async def root():
    return {
        "name": "PharmSearch",
        "version": os.getenv("APP_VERSION", "0.1.0"),
        "ok": True,
    }

@app.on_event("startup")
async def warmup():
    # Make sure lookup indexes exist before the first search
    from pharmsearch.container import get_index
    try:
        await get_index().ensure_indexes()
    except Exception:
        app_logger.exception("ensure_indexes failed; searches may be slow or fail")
