from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import List

import uvicorn
from fastapi import FastAPI
from pymongo import MongoClient
from dotenv import load_dotenv
load_dotenv()
from gaming_desk.api.routes import router
from gaming_desk.core.config import (
    Paths, MONGO_URI, MONGO_DB, MONGO_ENTRIES_COL, STORE_BACKEND, CHANGE_POLL_S,
    PER_PERSON_RATE, COUNTRY_CODE, CAFE_NAME, DISPLAY_TZ,
    SMS_GATEWAY_URL, SMS_API_KEY, SMS_TIMEOUT_S,
    CLOCK_TICK_S, EXPIRY_TICK_S, WARNING_WINDOW_S,
    ARCHIVE_RETENTION_MONTHS, ARCHIVE_INTERVAL_H, HOST, PORT,
)
from gaming_desk.core.clock import local_zone
from gaming_desk.domain.catalog import CATALOG
from gaming_desk.domain.errors import PersistenceError

from gaming_desk.infrastructure.mongo_repositories import MongoSessionRepository
from gaming_desk.infrastructure.session_store import InMemorySessionRepository
from gaming_desk.infrastructure.change_feed import MongoChangeFeed
from gaming_desk.infrastructure.sms_gateway import Fast2SmsGateway
from gaming_desk.infrastructure.excel_export import ExcelExporter

from gaming_desk.application.session_adapter import SessionStoreAdapter
from gaming_desk.application.notifier import NotificationDispatcher
from gaming_desk.application.expiry_monitor import ExpiryMonitor
from gaming_desk.application.archival import ArchivalSweep
from gaming_desk.application.live_board import LiveBoard
from gaming_desk.application.usecases import EstimateTotal, BuildAnalytics, ExportSessions

log = logging.getLogger("app")
app = FastAPI(title="SB Gaming Desk")
app.include_router(router)

_mongo_client: MongoClient | None = None
_change_feed: MongoChangeFeed | None = None
_tasks: List[asyncio.Task] = []


@app.on_event("startup")
async def on_startup() -> None:
    global _mongo_client, _change_feed

    tz = local_zone(DISPLAY_TZ)

    if STORE_BACKEND == "memory":
        log.warning("STORE_BACKEND=memory: sessions are lost on restart")
        repo = InMemorySessionRepository()
    else:
        _mongo_client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=3000, tz_aware=True)
        col = _mongo_client[MONGO_DB][MONGO_ENTRIES_COL]
        repo = MongoSessionRepository(col)
        _change_feed = MongoChangeFeed(col, poll_interval_s=CHANGE_POLL_S)

    store = SessionStoreAdapter(repo, CATALOG, rate=PER_PERSON_RATE, country_code=COUNTRY_CODE)
    dispatcher = NotificationDispatcher(
        Fast2SmsGateway(SMS_API_KEY, url=SMS_GATEWAY_URL, timeout_s=SMS_TIMEOUT_S),
        cafe_name=CAFE_NAME,
        tz=tz,
        country_code=COUNTRY_CODE,
    )
    monitor = ExpiryMonitor(store, dispatcher, interval_s=EXPIRY_TICK_S, country_code=COUNTRY_CODE)
    board = LiveBoard(store, warning_window=timedelta(seconds=WARNING_WINDOW_S), interval_s=CLOCK_TICK_S)
    exporter = ExcelExporter(Paths.ARCHIVE_DIR, tz)
    archival = ArchivalSweep(repo, exporter)

    if not SMS_API_KEY:
        log.warning("SMS_API_KEY is not set; thank-you messages will be rejected by the gateway")

    # DI for routes.py
    app.state.session_store = store
    app.state.live_board = board
    app.state.catalog = CATALOG
    app.state.estimate_uc = EstimateTotal(CATALOG, PER_PERSON_RATE)
    app.state.analytics_uc = BuildAnalytics(tz)
    app.state.export_uc = ExportSessions(exporter)
    app.state.archival = archival

    try:
        await store.refresh()
    except PersistenceError as e:
        log.error("Initial session load failed (%s); waiting for the change feed", e)

    if _change_feed is not None:
        _tasks.append(asyncio.create_task(_change_feed.run(store.refresh)))
    _tasks.append(asyncio.create_task(board.run()))
    _tasks.append(asyncio.create_task(monitor.run()))
    if ARCHIVE_INTERVAL_H > 0:
        _tasks.append(asyncio.create_task(archival.run_periodic(ARCHIVE_RETENTION_MONTHS, ARCHIVE_INTERVAL_H * 3600)))
    else:
        _tasks.append(asyncio.create_task(archival.run_once(ARCHIVE_RETENTION_MONTHS)))
    log.info("Startup complete")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    global _mongo_client
    if _change_feed is not None:
        _change_feed.stop()
    for t in _tasks:
        t.cancel()
    await asyncio.gather(*_tasks, return_exceptions=True)
    _tasks.clear()
    if _mongo_client:
        _mongo_client.close()


if __name__ == "__main__":
    uvicorn.run("main:app", host=HOST, port=PORT, reload=False)
