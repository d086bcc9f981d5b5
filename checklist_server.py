"""
Checklist Generation Server
Turns task descriptions into step-by-step checklists using Claude

Run directly (`python checklist_server.py`) or through uvicorn's factory mode:
`uvicorn --factory checklist_server:create_app`
"""
import json
import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.concurrency import run_in_threadpool

from checklist_service import ChecklistService
from claude_client import ChecklistGenerator, build_anthropic_client
from config import Settings, load_settings
from errors import ChecklistError, RequestValidationError
from quota import QuotaTracker

logger = logging.getLogger(__name__)

SERVICE_NAME = "Checklist Generator"
VERSION = "1.0.0"


def build_service(settings: Settings) -> ChecklistService:
    """Wires the Claude client, quota tracker and pipeline from settings"""
    client = build_anthropic_client(settings.anthropic_api_key, settings.llm_timeout_s)
    generator = ChecklistGenerator(
        client,
        model=settings.claude_model,
        max_tokens=settings.claude_max_tokens,
        timeout_s=settings.llm_timeout_s,
        max_retries=settings.llm_max_retries,
        initial_delay=settings.llm_initial_delay_s,
    )
    quota = QuotaTracker(
        per_task_limit=settings.per_task_daily_limit,
        daily_task_limit=settings.distinct_task_daily_limit,
        timezone=settings.quota_timezone,
    )
    return ChecklistService(generator, quota=quota, quota_charge=settings.quota_charge)


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[ChecklistService] = None,
) -> FastAPI:
    if service is None:
        # Fails fast when ANTHROPIC_API_KEY is missing
        settings = settings or load_settings()
        service = build_service(settings)

    app = FastAPI(title=SERVICE_NAME, version=VERSION)
    app.state.service = service

    @app.exception_handler(ChecklistError)
    async def checklist_error_handler(request: Request, exc: ChecklistError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.get("/")
    async def root():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": VERSION,
        }

    @app.get("/health")
    async def health():
        """Detailed health check"""
        quota = app.state.service.quota
        return {
            "status": "healthy",
            "claude_configured": settings is not None and bool(settings.anthropic_api_key),
            "model": app.state.service.generator.model,
            "per_task_daily_limit": quota.per_task_limit,
            "distinct_task_daily_limit": quota.daily_task_limit,
            "quota_timezone": quota.timezone,
            "quota_charge": app.state.service.quota_charge,
            "tracked_users": quota.tracked_users(),
        }

    @app.get("/home")
    async def home():
        return {"message": f"Welcome to the {SERVICE_NAME}"}

    @app.post("/generate-checklist")
    async def generate_checklist(request: Request):
        """
        Main endpoint: validate, check quotas, ask Claude, return sanitized JSON
        """
        body_bytes = await request.body()
        try:
            body = json.loads(body_bytes.decode("utf-8"))
        except ValueError as e:
            raise RequestValidationError(f"request body is not valid JSON: {e}") from e

        # Quota locks and the Claude call block, so keep them off the event loop
        checklist = await run_in_threadpool(app.state.service.generate, body)
        return Response(content=checklist, media_type="application/json")

    return app


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings()
    logger.info("Starting checklist server on port %d", settings.port)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
