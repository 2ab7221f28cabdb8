"""DRSI Law DV Lottery intake – FastAPI application."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.errors import StorageError
from app.routers import admin, contracts, google_auth, registration, webhook

log = logging.getLogger("uvicorn.error")

settings = get_settings()
app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(contracts.router)
app.include_router(webhook.router)
app.include_router(registration.router)
app.include_router(admin.router)
app.include_router(google_auth.router)


@app.exception_handler(StorageError)
def storage_error_handler(request: Request, exc: StorageError):
    log.error("[Storage] %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Storage unavailable. Please try again later."})


@app.on_event("startup")
def startup():
    if settings.mailgun_api_key and settings.mailgun_domain:
        log.info("[Mailgun] App using domain=%s", settings.mailgun_domain)
    elif settings.sendgrid_api_key:
        log.info("[Email] Using SendGrid")
    elif settings.smtp_host:
        log.info("[Email] Using SMTP host=%s", settings.smtp_host)
    else:
        log.warning("[Email] No provider configured - emails will be skipped")
    if not settings.google_oauth_refresh_token:
        log.warning("[Drive] GOOGLE_OAUTH_REFRESH_TOKEN not set; visit /api/auth/google/authorize to authorize")
    log.info("[Storage] Backend=%s", settings.storage_backend)

    if settings.sweep_cron_enabled:
        from apscheduler.schedulers.background import BackgroundScheduler
        from app.services.sweeps import run_sweep_job

        scheduler = BackgroundScheduler()
        scheduler.add_job(run_sweep_job, "interval", minutes=settings.sweep_interval_minutes)
        scheduler.start()
        app.state.scheduler = scheduler


@app.on_event("shutdown")
def shutdown():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)


@app.get("/")
def root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
