import logging
from typing import Any, Dict

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .logging_config import configure_logging
from .record_store import RecordStore
from .sync_routes import get_record_store, router as sync_router
from .telemetry import recorder


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="Factory Health Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(sync_router)

settings_snapshot = get_settings()
logger.info("Backend starting with machine data at %s", settings_snapshot.data_path)
logger.info("History limit: %d (histories hold up to %d records)", settings_snapshot.history_limit, settings_snapshot.history_limit + 1)


@app.get("/healthz")
def health(store: RecordStore = Depends(get_record_store)) -> Dict[str, Any]:
    recent = recorder.recent()
    return {
        "status": "ok",
        "users": len(store.list_usernames()),
        "last_event": recent[-1].name if recent else None,
    }


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("factory_health.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
