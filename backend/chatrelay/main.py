import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import ANY_ORIGIN, Settings, load_settings
from .logging_setup import configure_logging
from .registry import ConnectionRegistry
from .relay import RelayHandler
from .routers import chat, status

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="chat-relay")
    app.state.settings = settings
    app.state.registry = ConnectionRegistry(send_timeout=settings.send_timeout)
    app.state.relay = RelayHandler(app.state.registry, settings)

    origins = list(settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=ANY_ORIGIN not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Route registration
    app.include_router(chat.build_router(settings.chat_path))
    app.include_router(status.router)

    if ANY_ORIGIN in settings.allowed_origins:
        logger.info("WebSocket %s accepts any origin (CHAT_ALLOWED_ORIGINS=*)", settings.chat_path)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    _settings = app.state.settings
    uvicorn.run("chatrelay.main:app", host=_settings.host, port=_settings.port)
