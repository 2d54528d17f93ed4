from typing import Any

from fastapi import FastAPI, Query, status
from fastapi.middleware.cors import CORSMiddleware

from worklog_assistant.api.dependencies import HandlerDep, lifespan
from worklog_assistant.config import settings
from worklog_assistant.dto import (
    ChatHistoryResponse,
    ChatMessageRequest,
    ChatMessageResponse,
    ChatStatsResponse,
    ClearCacheResponse,
    DeleteSessionResponse,
    HealthCheckResponse,
    SessionMessagesResponse,
)

API_TITLE = "Work Log Assistant API"
API_VERSION = "0.1.0"
API_DESCRIPTION = "Answers questions about team work logs using vector search and an LLM"


def create_app(lifespan_handler=lifespan) -> FastAPI:
    """Build the FastAPI application.

    Args:
        lifespan_handler: Lifespan that populates app.state. Tests pass
            one that installs fakes.
    """
    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        lifespan=lifespan_handler,
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": API_TITLE,
            "version": API_VERSION,
            "description": API_DESCRIPTION,
            "endpoints": {
                "chatbot": "/api/chatbot",
                "history": "/api/chatbot/history",
                "stats": "/api/chatbot/stats",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        """Health check endpoint."""
        return await handler.health_check()

    @app.post(
        "/api/chatbot",
        response_model=ChatMessageResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def post_message(request: ChatMessageRequest, handler: HandlerDep) -> ChatMessageResponse:
        """Answer a question from the work logs."""
        return await handler.post_message(request)

    @app.get("/api/chatbot/history", response_model=ChatHistoryResponse)
    async def get_history(
        handler: HandlerDep,
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1),
    ) -> ChatHistoryResponse:
        """List chat sessions, most recent first."""
        return await handler.get_history(page=page, limit=limit)

    @app.get("/api/chatbot/stats", response_model=ChatStatsResponse)
    async def get_stats(handler: HandlerDep) -> ChatStatsResponse:
        """Cache and completion latency statistics."""
        return await handler.get_stats()

    @app.delete("/api/chatbot/cache", response_model=ClearCacheResponse)
    async def clear_cache(handler: HandlerDep) -> ClearCacheResponse:
        """Clear the embedding and search caches."""
        return await handler.clear_cache()

    @app.get("/api/chatbot/session/{session_id}", response_model=SessionMessagesResponse)
    async def get_session(session_id: str, handler: HandlerDep) -> SessionMessagesResponse:
        """All exchanges of one session, oldest first."""
        return await handler.get_session_messages(session_id)

    @app.delete("/api/chatbot/session/{session_id}", response_model=DeleteSessionResponse)
    async def delete_session(session_id: str, handler: HandlerDep) -> DeleteSessionResponse:
        """Delete all exchanges of one session."""
        return await handler.delete_session(session_id)

    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "worklog_assistant.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    main()
