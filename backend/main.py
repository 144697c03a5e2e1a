# backend/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, get_settings
from models.persona import PersonaCatalogue, default_catalogue
from routes import websocket_routes
from services.interviewer_prompt import InterviewerPromptGenerator
from services.relay_session import UpstreamConnector
from services.session_acceptor import VoiceSessionAcceptor
from services.voice_agent_client import VoiceAgentConnector
from utils.logger import get_logger, setup_logging

setup_logging()
log = get_logger(__name__)

VERSION = "1.0.0"
SERVICE_NAME = "ai-show-server"


def create_app(
    settings: Optional[Settings] = None,
    catalogue: Optional[PersonaCatalogue] = None,
    prompt_generator: Optional[InterviewerPromptGenerator] = None,
    connector: Optional[UpstreamConnector] = None,
) -> FastAPI:
    """Build the API. Collaborators default to the production ones."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(f"🚀 Starting AI Show voice relay v{VERSION}")
        services = []
        if settings.deepgram_api_key:
            services.append("✅ Deepgram Voice Agent")
        if settings.groq_api_key:
            services.append("✅ Groq interviewer prompts")
        log.info(f"Services: {', '.join(services) if services else 'None'}")
        yield
        log.info("🛑 Shutting down...")

    app = FastAPI(
        title="AI Show Voice Relay",
        version=VERSION,
        description="Realtime voice relay between the AI Show client and the Deepgram Voice Agent",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.voice_acceptor = VoiceSessionAcceptor(
        settings=settings,
        catalogue=catalogue or default_catalogue(),
        prompt_generator=prompt_generator or InterviewerPromptGenerator(settings),
        connector=connector or VoiceAgentConnector.from_settings(settings),
    )

    app.include_router(websocket_routes.router)

    @app.get("/")
    async def root():
        return {
            "message": f"AI Show Voice Relay v{VERSION}",
            "status": "operational",
            "endpoints": {
                "talk": "/talk",
                "interview": "/interview?role=YourRole&interviewerName=Optional",
                "health": "/health",
            },
            "interviewers": list(app.state.voice_acceptor.catalogue.names),
        }

    @app.get("/health")
    async def health_check():
        """Health check"""
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": VERSION,
            "services": {
                "deepgram": bool(settings.deepgram_api_key),
                "groq": bool(settings.groq_api_key),
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
