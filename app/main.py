from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.endpoints.sync import router as sync_router
from app.api.v1.endpoints.webhook_receiver import router as webhook_router
from app.core.logging_config import configure_logging
from app.db.session import init_db

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    _logger.info("Printify-SureCart sync service started")
    yield


app = FastAPI(title="Printify SureCart Sync", lifespan=lifespan)

origins = [
    "http://localhost",
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sync_router, prefix="/api/v1")
app.include_router(webhook_router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "ok"}
