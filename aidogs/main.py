import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from aidogs.core.config import settings
from aidogs.core.logging import configure_logging
from aidogs.database import Base, engine
from aidogs.errors import LedgerError, StorageError
from aidogs.routers import (
    boost_routes,
    claim_routes,
    leaderboard_routes,
    rewards_routes,
    task_routes,
    user_routes,
)
from aidogs.services.scheduler import start_background_tasks

load_dotenv()
configure_logging()

logger = logging.getLogger("aidogs")


# ---------- Process-fatal errors ----------

def _exit_fatally(message: str, exc_info=None) -> None:
    logger.critical(message, exc_info=exc_info)
    logging.shutdown()
    os._exit(1)  # the supervisor restarts us


def _fatal_excepthook(exc_type, exc, tb):
    _exit_fatally("Uncaught exception", exc_info=(exc_type, exc, tb))


def _fatal_loop_handler(loop, context):
    exc = context.get("exception")
    exc_info = (type(exc), exc, exc.__traceback__) if exc else None
    _exit_fatally(f"Unhandled error in event loop: {context.get('message')}", exc_info=exc_info)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.EXIT_ON_UNHANDLED_ERROR:
        sys.excepthook = _fatal_excepthook
        asyncio.get_running_loop().set_exception_handler(_fatal_loop_handler)

    tasks = start_background_tasks() if settings.SCHEDULER_ENABLED else []
    logger.info("%s started (scheduler %s)", settings.APP_NAME, "on" if tasks else "off")

    yield

    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    logger.info("%s stopped", settings.APP_NAME)


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=settings.ALLOW_CREDENTIALS,
    allow_methods=settings.ALLOW_METHODS,
    allow_headers=settings.ALLOW_HEADERS,
)


# ---------- Error responses: always a message, never a stack trace ----------

@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message, "success": False})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        fields.append(".".join(loc) or "body")
    message = f"Invalid or missing fields: {', '.join(fields)}" if fields else "Invalid request"
    return JSONResponse(status_code=400, content={"message": message, "success": False})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Storage error on %s", request.url.path, exc_info=exc)
    error = StorageError()
    return JSONResponse(status_code=error.status_code, content={"message": error.message, "success": False})


@app.get("/")
def read_root():
    return {"message": "AiDogs backend running"}


# Routers
app.include_router(user_routes.router)
app.include_router(claim_routes.router)
app.include_router(rewards_routes.router)
app.include_router(task_routes.router)
app.include_router(leaderboard_routes.router)
app.include_router(boost_routes.router)

# Create DB tables
Base.metadata.create_all(bind=engine)


def run() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "4000")))
