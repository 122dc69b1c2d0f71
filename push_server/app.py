from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from push_server.api import routes
from push_server.config import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="push_server",
    description="Web push subscription registry with immediate and scheduled delivery",
    version=settings.app_version,
    debug=settings.app_debug,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allow_origins),
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "bypass-tunnel-reminder"],
    allow_credentials=False,
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    logger.info("Rejected invalid request", extra={"path": request.url.path, "problems": problems})
    return JSONResponse(status_code=400, content={"error": "Invalid request: " + "; ".join(problems)})


@app.on_event("startup")
def startup_event() -> None:
    logger.info(
        "Push server started",
        extra={
            "provider": routes.notification_service.provider.name,
            "vapid_public_key": settings.vapid_public_key or None,
        },
    )


@app.on_event("shutdown")
def shutdown_event() -> None:
    routes.push_scheduler.shutdown()


app.include_router(routes.router)


@app.get("/")
def index() -> dict:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "endpoints": {
            "GET /api/vapid-public-key": "Fetch the VAPID public key",
            "POST /api/subscribe": "Register a push subscription",
            "POST /api/push": "Push immediately",
            "POST /api/schedule-push": "Schedule a push",
            "GET /api/scheduled": "List scheduled pushes",
            "DELETE /api/scheduled/{task_id}": "Cancel a scheduled push",
            "GET /api/health": "Health check",
        },
    }
