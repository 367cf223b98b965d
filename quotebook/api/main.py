"""Quotebook API — FastAPI application."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quotebook.api.routers import (
    collections,
    favorites,
    notifications,
    preferences,
    profiles,
    quotes,
    searches,
)
from quotebook.engine.errors import (
    DataAccessError,
    InvalidTimeError,
    PermissionDenied,
    QuotebookError,
    RowNotFound,
    TableMissing,
    UniqueViolation,
    user_message,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="quotebook", version="0.1.0")

# CORS — allow the Expo web dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8081", "http://localhost:19006"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(quotes.router)
app.include_router(favorites.router)
app.include_router(collections.router)
app.include_router(searches.router)
app.include_router(notifications.router)
app.include_router(preferences.router)
app.include_router(profiles.router)

_STATUS_BY_ERROR = (
    (DataAccessError, 503),
    (TableMissing, 503),
    (InvalidTimeError, 422),
    (PermissionDenied, 403),
    (UniqueViolation, 409),
    (RowNotFound, 404),
)


@app.exception_handler(QuotebookError)
async def quotebook_error_handler(request: Request, exc: QuotebookError):
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status,
        content={"detail": user_message(exc), "code": exc.code, "error": exc.message},
    )


@app.get("/health")
def health():
    return {"status": "ok"}
