import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import settings_router, alerts_router, metrics_router, targets_router
from api import deps
from alerts import AlertEngine
from config import get_settings
from core import TargetDirectory
from db import SQLiteStorage
from services import AlertNotifier

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_settings()
    configure_logging(config.log_level)

    deps.get_settings_provider().reload()
    deps.get_dispatcher()
    logger.info("Alert engine started: db=%s workers=%d", config.db_path, config.worker_count)
    yield
    deps.shutdown()
    logger.info("Alert engine stopped")


app = FastAPI(
    title="Data Center Alert API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Type", "Cache-Control", "Last-Event-ID"],
)

# settings before alerts: /alerts/settings must not hit /alerts/{alert_id}
app.include_router(settings_router, prefix="/api")
app.include_router(alerts_router, prefix="/api")
app.include_router(metrics_router, prefix="/api")
app.include_router(targets_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": "Data Center Alert API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
def health(
    engine: AlertEngine = Depends(deps.get_alert_engine),
    notifier: AlertNotifier = Depends(deps.get_notifier),
    directory: TargetDirectory = Depends(deps.get_target_directory),
    storage: SQLiteStorage = Depends(deps.get_storage),
):
    stats = engine.stats()

    return {
        "status": "healthy",
        "engine": {
            "evaluations": stats["evaluations"],
            "triggers": stats["triggers"],
            "resolved": stats["resolved"],
            "errors": stats["errors"],
            "uptime_seconds": stats["uptime_seconds"],
        },
        "subscribers": notifier.total_subscriber_count(),
        "targets": len(directory),
        "storage": storage.get_stats(),
    }


if __name__ == "__main__":
    import uvicorn
    config = get_settings()
    uvicorn.run("main:app", host=config.host, port=config.port, reload=True)
