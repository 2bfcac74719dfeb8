from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kiosk.config import get_settings
from kiosk.logging import clear_session_id, get_logger, setup_logging
from kiosk.routers.kiosk import router as kiosk_router
from kiosk.routers.relay import router as relay_router
from kiosk.services.runtime import clear_runtime, create_runtime
from kiosk.services.scheduler import AsyncioScheduler

settings = get_settings()
setup_logging(settings.log_level, settings.log_json)
log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The kiosk session's timers run on this loop for the life of the process.
    runtime = create_runtime(AsyncioScheduler(), settings=settings)
    runtime.start()
    try:
        yield
    finally:
        runtime.stop()
        clear_runtime()
        clear_session_id()


app = FastAPI(title="Kiosk Survey", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True, allow_methods=["*"], allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(kiosk_router)
app.include_router(relay_router)
