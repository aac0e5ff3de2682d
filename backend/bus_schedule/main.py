import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .database import StoreUnavailableError, get_engine, reset_engine
from .routes import schedule
from .websocket_manager import feed_manager

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The store is opened once up front; a missing store is fatal
    try:
        get_engine()
    except StoreUnavailableError as e:
        logger.critical("Schedule store unavailable: %s", e)
        raise
    yield
    await feed_manager.shutdown()
    reset_engine()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(schedule.router)


@app.exception_handler(StoreUnavailableError)
@app.exception_handler(SQLAlchemyError)
async def store_unavailable_handler(request: Request, exc: Exception):
    logger.error("Schedule store error on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Schedule store unavailable"},
    )


@app.get("/")
def health():
    return {"status": "ok"}
