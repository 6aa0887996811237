from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, Query, Request
from fastapi.responses import ORJSONResponse, PlainTextResponse

from groupbot.core.config import load_settings
from groupbot.core.pipeline import build_pipeline

log_level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
logging.getLogger("groupbot").setLevel(log_level)
log = logging.getLogger("groupbot.main")

settings = load_settings()
if not (settings.page_access_token and settings.validation_token):
    log.warning("MESSENGER_PAGE_ACCESS_TOKEN or MESSENGER_VALIDATION_TOKEN is not set")

app = FastAPI(title="GroupBot Webhook", default_response_class=ORJSONResponse)

pipeline = build_pipeline(settings)


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "nlu_backend": settings.nlu_backend}


@app.get("/webhook")
def verify_webhook(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: str = Query(default="", alias="hub.challenge"),
):
    if mode == "subscribe" and settings.validation_token and token == settings.validation_token:
        log.info("Validating webhook")
        return PlainTextResponse(challenge)
    log.error("Failed validation. Make sure the validation tokens match.")
    return PlainTextResponse("Forbidden", status_code=403)


@app.post("/webhook")
async def receive_webhook(request: Request, background_tasks: BackgroundTasks) -> dict:
    # Acknowledge right away; the platform expects a 200 within 20 seconds.
    # Events are validated one by one so a bad event cannot fail the delivery.
    try:
        body = await request.json()
    except ValueError:
        log.warning("Webhook body is not JSON")
        return {"status": "ok"}
    background_tasks.add_task(pipeline.handle_webhook, body)
    return {"status": "ok"}


# Local dev convenience: uvicorn entry point
if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("groupbot.main:app", host="0.0.0.0", port=port, reload=True)
