import asyncio
import contextlib
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pos_api.core.config import settings
from pos_api.core.errors import register_error_handlers
from pos_api.db.session import SessionLocal
from pos_api.api.v1.api import router as api_v1_router
from pos_api.services.orders.builder import CartRegistry
from pos_api.services.orders.store import OrderStore
from pos_api.services.realtime.alerts import PaidOrderAlerts
from pos_api.services.realtime.feed import OrderChangeFeed
from pos_api.services.realtime.notifier import RealtimeNotifier

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ALERT_SWEEP_SECONDS = 1.0

app = FastAPI(title="POS Kitchen API", version="0.1.0")

# set up CORS so the POS and kitchen screens can talk to us
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# mount our API routes
app.include_router(api_v1_router, prefix="/api/v1")


def load_order_for_alert(order_id: int):
    db = SessionLocal()
    try:
        return OrderStore(db).get_order(order_id)
    finally:
        db.close()


async def _sweep_alerts(alerts: PaidOrderAlerts) -> None:
    while True:
        await asyncio.sleep(ALERT_SWEEP_SECONDS)
        alerts.expire()


@app.on_event("startup")
async def on_startup():
    # db's handled by alembic migrations
    # run 'alembic upgrade head' or scripts/init_db.py
    feed = OrderChangeFeed()
    notifier = RealtimeNotifier(feed)
    notifier.start()

    alerts = PaidOrderAlerts(load_order_for_alert)
    alerts.attach(notifier)

    app.state.order_feed = feed
    app.state.realtime = notifier
    app.state.order_alerts = alerts
    app.state.cart_registry = CartRegistry()
    app.state.alert_sweeper = asyncio.create_task(_sweep_alerts(alerts))
    logger.info(f"POS API started ({settings.APP_ENV})")


@app.on_event("shutdown")
async def on_shutdown():
    sweeper = getattr(app.state, "alert_sweeper", None)
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper

    app.state.order_alerts.detach()
    app.state.realtime.stop()
    app.state.order_feed.uninstall()


@app.get("/health")
def health():
    return {"status": "ok", "env": settings.APP_ENV}
