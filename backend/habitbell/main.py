import asyncio
import logging

from fastapi import FastAPI

from .api.routes_analytics import router as analytics_router
from .api.routes_categories import router as categories_router
from .api.routes_completions import router as completions_router
from .api.routes_notifications import router as notifications_router
from .api.routes_reminders import router as reminders_router
from .api.routes_status import router as status_router
from .api.routes_telegram import router as telegram_router
from .config import settings
from .core.database import Base, engine, SessionLocal
from .core.notification_dispatcher import notification_dispatch_loop
from .core.notification_runtime import build_runtime, load_reminder_records
from .core.seed import seed_initial_data

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
)


@app.on_event("startup")
async def startup_event():
    # Create tables
    Base.metadata.create_all(bind=engine)

    runtime = build_runtime()
    app.state.notifications = runtime

    db = SessionLocal()
    try:
        # Seed if empty
        seed_initial_data(db)

        # Re-register every enabled reminder's triggers
        await runtime.reconciler.rehydrate(load_reminder_records(db))
    finally:
        db.close()

    # Start notification dispatcher
    asyncio.create_task(notification_dispatch_loop(runtime.outbox))
    logger.info("%s started (%s)", settings.app_name, settings.environment)


app.include_router(status_router)
app.include_router(reminders_router)
app.include_router(completions_router)
app.include_router(categories_router)
app.include_router(analytics_router)
app.include_router(notifications_router)
app.include_router(telegram_router)
