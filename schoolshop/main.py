# schoolshop/main.py
import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
import uvicorn

from schoolshop.data.database import init_db
from schoolshop.api.routers import admin, cart, catalog, checkout, health, orders
from schoolshop.services.order_expiry import run_sweep, start_periodic_sweep
from schoolshop.services.storage import create_storage
from schoolshop.utils.settings import DB_AUTO_CREATE, SWEEP_IN_PROCESS, SWEEP_INTERVAL_SECONDS
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if DB_AUTO_CREATE:
        logger.info("Initializing database tables")
        init_db()

    if not hasattr(app.state, "storage"):
        app.state.storage = create_storage()

    # sweep przy starcie, potem cyklicznie (celery beat albo timer w procesie)
    result = await asyncio.to_thread(run_sweep)
    if not result.success:
        logger.warning(f"Startup order sweep failed: {result.error}")

    sweeper = start_periodic_sweep(SWEEP_INTERVAL_SECONDS) if SWEEP_IN_PROCESS else None
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper
            logger.info("Periodic order sweep stopped")


def create_app(storage=None) -> FastAPI:
    app = FastAPI(
        title="School Supplies Shop",
        version="1.0.0",
        lifespan=lifespan,
    )
    if storage is not None:
        app.state.storage = storage

    # Include routers
    app.include_router(health.router)
    app.include_router(catalog.router)
    app.include_router(cart.router)
    app.include_router(checkout.router)
    app.include_router(orders.router)
    app.include_router(admin.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
