"""
FastAPI Application: REST API + Discord interactions endpoint.

Provides:
- Dispatch loop lifecycle (started and stopped with the app)
- Discord HTTP interactions (the /subscribe toggle command)
- REST API for inspecting the schedule and managing subscriptions
- Health monitoring for the loop and the Discord channel
"""
from __future__ import annotations

import json
import structlog
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional
from contextlib import asynccontextmanager

# Load .env before any config is read
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, HTTPException, Request, Query
from pydantic import BaseModel

from api.interactions import handle_interaction, verify_signature
from channels.discord_adapter import DiscordAdapter
from config.logging_setup import configure_logging
from config.settings import get_settings
from core.dispatcher import DispatchLoop
from core.subscriptions import MISSING_GUILD_ERROR, SubscriptionService, format_confirmation
from database.store import SqlSubscriptionStore
from database.store_base import StoreFetchError
from database.store_factory import create_store
from models.schemas import ToggleOutcome
from moments.classifier import MomentClassifier
from moments.messages import MomentTexts
from moments.policy import SkipPolicy

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=not settings.debug)

    # Invalid window tables or message keys fail startup here
    classifier = MomentClassifier.from_settings(settings.schedule)
    texts = MomentTexts(settings.messages)

    store = create_store(asdict(settings.database))
    if isinstance(store, SqlSubscriptionStore):
        await store.init_schema()

    adapter = DiscordAdapter()
    await adapter.initialize(asdict(settings.discord))

    dispatcher = DispatchLoop(
        store=store,
        channel=adapter,
        classifier=classifier,
        policy=SkipPolicy(),
        accent_color=settings.schedule.accent_color,
        texts=texts,
    )

    app.state.settings = settings
    app.state.classifier = classifier
    app.state.texts = texts
    app.state.store = store
    app.state.adapter = adapter
    app.state.service = SubscriptionService(store)
    app.state.dispatcher = dispatcher

    if settings.dispatch_enabled:
        await dispatcher.start()

    logger.info("moment_notifier_started",
                store=type(store).__name__,
                utc_offset_minutes=settings.schedule.utc_offset_minutes,
                dispatch_enabled=settings.dispatch_enabled)
    yield

    await dispatcher.stop()
    await adapter.shutdown()
    await store.close()
    logger.info("moment_notifier_stopped")


# ──────────────────────────────────────────────────────────────
#  App
# ──────────────────────────────────────────────────────────────

app = FastAPI(
    title="Moment Notifier API",
    description="Scheduled moment messages for Discord channels",
    version="1.0.0",
    lifespan=lifespan,
)


# ──────────────────────────────────────────────────────────────
#  Request/Response Models
# ──────────────────────────────────────────────────────────────

class ToggleRequest(BaseModel):
    guild_id: Optional[str] = None
    channel_id: str


# ══════════════════════════════════════════════════════════════
#  HEALTH & DIAGNOSTICS
# ══════════════════════════════════════════════════════════════

@app.get("/health")
async def health(request: Request):
    state = request.app.state
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "dispatch_running": state.dispatcher.running,
        "last_tick": state.dispatcher.last_report.to_dict() if state.dispatcher.last_report else None,
        "channel": await state.adapter.health_check(),
    }


# ══════════════════════════════════════════════════════════════
#  SCHEDULE
# ══════════════════════════════════════════════════════════════

@app.get("/api/v1/moment")
async def current_moment(request: Request, at: Optional[str] = Query(default=None)):
    """Classify now, or the ISO timestamp given in `at`."""
    state = request.app.state
    if at:
        try:
            # fromisoformat only accepts a trailing "Z" from Python 3.11
            instant = datetime.fromisoformat(at[:-1] + "+00:00" if at.endswith(("Z", "z")) else at)
        except ValueError:
            raise HTTPException(400, f"Invalid timestamp: {at}")
    else:
        instant = datetime.now(timezone.utc)

    local = state.classifier.localize(instant)
    classified = state.classifier.classify(instant)
    if classified is None:
        return {"at": instant.isoformat(), "local": local.isoformat(), "moment": None}

    return {
        "at": instant.isoformat(),
        "local": local.isoformat(),
        "moment": classified.moment.key,
        "skip_odds": classified.metadata.skip_odds,
        "is_last_instant": classified.metadata.is_last_instant,
        "text": state.texts.text_for(classified.moment),
    }


# ══════════════════════════════════════════════════════════════
#  SUBSCRIPTIONS
# ══════════════════════════════════════════════════════════════

@app.get("/api/v1/subscriptions")
async def list_subscriptions(request: Request):
    try:
        subscriptions = await request.app.state.store.list_all()
    except StoreFetchError as e:
        raise HTTPException(503, str(e))
    return [s.to_record() for s in subscriptions]


@app.post("/api/v1/subscriptions/toggle")
async def toggle_subscription(req: ToggleRequest, request: Request):
    result = await request.app.state.service.toggle(req.guild_id, req.channel_id)
    if result.outcome == ToggleOutcome.ERROR:
        raise HTTPException(400 if result.error == MISSING_GUILD_ERROR else 503, result.error)
    return {
        "outcome": result.outcome.value,
        "subscribed": result.subscribed,
        "confirmation": format_confirmation(result.subscribed),
    }


# ══════════════════════════════════════════════════════════════
#  DISCORD INTERACTIONS
# ══════════════════════════════════════════════════════════════

@app.post("/interactions")
async def discord_interactions(request: Request):
    """Receive Discord interactions with signature verification."""
    state = request.app.state
    body_bytes = await request.body()

    signature = request.headers.get("X-Signature-Ed25519", "")
    timestamp = request.headers.get("X-Signature-Timestamp", "")
    if not verify_signature(state.settings.discord.public_key, signature, timestamp, body_bytes):
        logger.warning("discord_interaction_signature_invalid")
        raise HTTPException(401, "Invalid request signature")

    try:
        payload = json.loads(body_bytes)
    except ValueError:
        raise HTTPException(400, "Invalid JSON body")

    return await handle_interaction(
        payload,
        service=state.service,
        adapter=state.adapter,
        accent_color=state.settings.schedule.accent_color,
    )


# ══════════════════════════════════════════════════════════════
#  Entry Point
# ══════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
