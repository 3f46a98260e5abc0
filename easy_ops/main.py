import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from easy_ops.core.config import settings
from easy_ops.core.database import Base, engine

import easy_ops.models  # Ensure models are registered

from easy_ops.routes.inventory import inventory_router
from easy_ops.routes.locations import location_router
from easy_ops.routes.reports import report_router
from easy_ops.routes.dates import dates_router
from easy_ops.routes.webhooks import webhook_router


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ---- STARTUP ----
    configure_logging()
    Base.metadata.create_all(bind=engine)
    logging.getLogger(__name__).info(f"Easy Ops API started ({settings.ENVIRONMENT})")

    yield

app = FastAPI(
    title="Loud Baby Easy Ops API",
    version="1.0.0",
    lifespan=lifespan
)

API_PREFIX = "/api/v1"

app.include_router(inventory_router, prefix=API_PREFIX)
app.include_router(location_router, prefix=API_PREFIX)
app.include_router(report_router, prefix=API_PREFIX)
app.include_router(dates_router, prefix=API_PREFIX)
app.include_router(webhook_router, prefix=API_PREFIX)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get(f"{API_PREFIX}/")
def root():
    return {"message": "Easy Ops API is running"}
