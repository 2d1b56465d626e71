# avtools/main.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# --- Local imports ---
from .config import get_settings        # fails fast on missing AIRTABLE_* env
from .errors import ValidationFailed
from .logging_utils import setup_logger

# Routers
from avtools.routers import leads as leads_router         # /api/leads
from avtools.routers import pages as pages_router         # /products/{slugOrId}
from avtools.routers import products as products_router   # /api/products
from avtools.routers import reviews as reviews_router     # /api/reviews

# ---------------------------
# Settings are resolved before the app exists
# ---------------------------
settings = get_settings()
log = setup_logger("api")

app = FastAPI(title="Aviation Tools Directory", version="0.1.0")

# ---------------------------
# CORS for the frontend (default: local dev on :3000)
# ---------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------
# Register routers
# ---------------------------
app.include_router(products_router.router)
app.include_router(reviews_router.router)
app.include_router(leads_router.router)
app.include_router(pages_router.router)


# ---------------------------
# Error boundaries
# ---------------------------
@app.exception_handler(RequestValidationError)
async def request_validation_failed(request: Request, exc: RequestValidationError):
    failed = ValidationFailed.from_errors(exc.errors())
    log.info("validation failed path=%s fields=%s", request.url.path, sorted(failed.fields))
    return JSONResponse(status_code=400, content=failed.to_payload())


@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception):
    log.exception("unhandled error path=%s", request.url.path)
    return JSONResponse(status_code=500, content={"ok": False, "error": "Internal server error"})


# ---------------------------
# Health
# ---------------------------
@app.get("/ping")
def ping():
    return {"message": "pong"}
