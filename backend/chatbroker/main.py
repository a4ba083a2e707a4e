from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from chatbroker.core.config import get_settings
from chatbroker.core.database import engine
from chatbroker.core.security import get_current_user
from chatbroker.routers import chat, conversations, models
from chatbroker.services.llm.orchestrator import LLMOrchestrator


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: build provider adapters once; missing keys just leave a provider out
    app.state.orchestrator = LLMOrchestrator.from_settings(settings)
    logger.info(
        "Providers available: %s",
        [p.value for p in app.state.orchestrator.providers.available],
    )
    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title="Chat Broker API",
    description="Streams chat completions from multiple LLM providers",
    version="1.0.0",
    lifespan=lifespan,
)
app.router.redirect_slashes = False

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include routers (all require a bearer token)
authenticated = [Depends(get_current_user)]
app.include_router(chat.router, prefix="/api/chat", tags=["Chat"], dependencies=authenticated)
app.include_router(
    conversations.router,
    prefix="/api/conversations",
    tags=["Conversations"],
    dependencies=authenticated,
)
app.include_router(models.router, prefix="/api/models", tags=["Models"], dependencies=authenticated)


@app.get("/")
async def root():
    return {
        "message": "Welcome to the Chat Broker API",
        "documentation": {"swagger_ui": "/docs", "openapi_json": "/openapi.json"},
    }


@app.get("/health")
async def health_check(request: Request):
    orchestrator: LLMOrchestrator | None = getattr(request.app.state, "orchestrator", None)
    providers = [p.value for p in orchestrator.providers.available] if orchestrator else []
    return {"status": "healthy", "providers": providers}
