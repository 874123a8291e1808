import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from john_chat.config import get_config
from john_chat.controller import ConversationController
from john_chat.llm import Generator
from john_chat.routes import router

load_dotenv(Path(__file__).parent.parent / ".env")

logger = logging.getLogger(__name__)


def create_app(
    config: dict | None = None, generator: Generator | None = None
) -> FastAPI:
    """Build the API app around a single in-memory conversation.

    uvicorn calls this as a factory (see main.py); tests pass a config and a
    stub generator.
    """
    resolved = config or get_config()

    app = FastAPI(title="John Chat")
    app.state.config = resolved
    app.state.controller = ConversationController.from_config(resolved, generator=generator)
    app.include_router(router, prefix="/api")
    logger.info(
        "Generation backend %s (%s)",
        resolved["llm_connection"]["provider_url"],
        resolved["llm_connection"]["provider_format"],
    )
    return app
