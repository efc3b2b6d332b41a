"""FastAPI application entry point for the ChatHub API."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session

from chathub import __version__
from chathub.api.auth import ensure_admin_user
from chathub.api.auth import router as auth_router
from chathub.api.routes.chat import router as chat_router
from chathub.api.routes.conversations import router as conversations_router
from chathub.api.routes.images import router as images_router
from chathub.api.routes.presets import router as presets_router
from chathub.config import settings
from chathub.database import engine, init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed the admin account."""
    init_db()
    with Session(engine) as session:
        ensure_admin_user(session)
    logger.info("Database initialized")

    yield


app = FastAPI(
    title="ChatHub API",
    description="Chat over OpenAI and Gemini models with web search, image generation and presets",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(conversations_router)
app.include_router(chat_router)
app.include_router(images_router)
app.include_router(presets_router)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Hide internal error details from clients."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("chathub.main:app", host="0.0.0.0", port=8000)
