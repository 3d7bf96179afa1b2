"""
FastAPI Application - REST API over puzzle sessions.

Endpoints:
    GET    /api/v1/health                    Health check
    POST   /api/v1/sessions                  Create session from a puzzle definition
    GET    /api/v1/sessions                  List active sessions
    GET    /api/v1/sessions/{id}             Session status and world snapshot
    POST   /api/v1/sessions/{id}/commands    Submit one command
    GET    /api/v1/sessions/{id}/debug       Text dump of the world
    DELETE /api/v1/sessions/{id}             End session

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Union
import os

from .. import __version__

# Environment configuration
PARABOX_ENV = os.getenv("PARABOX_ENV", "development")
PARABOX_MAX_SESSIONS = int(os.getenv("PARABOX_MAX_SESSIONS", "100"))
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from ..puzzle_schema import PuzzleDefinition
    from ..session import SessionManager
    from .service import APIService
    from .schemas import (
        CommandRequest,
        CommandResponse,
        DebugResponse,
        EndSessionResponse,
        ErrorCode,
        ErrorResponse,
        HealthResponse,
        SessionListResponse,
        SessionResponse,
    )

    app = FastAPI(
        title="Parabox Engine API",
        description="""
Recursive box-pushing puzzle engine.

Create a session from a puzzle definition, then submit one command at a
time. Illegal moves are reported with outcome `illegal` and leave the
world unchanged.

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | Session does not exist |
| `INVALID_PUZZLE` | Puzzle definition failed validation |
| `INVALID_COMMAND` | Command word could not be parsed |
| `SESSION_LIMIT` | Too many sessions are open |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService(
        session_manager=SessionManager(max_sessions=PARABOX_MAX_SESSIONS)
    )

    status_codes = {
        ErrorCode.SESSION_NOT_FOUND: 404,
        ErrorCode.INVALID_PUZZLE: 400,
        ErrorCode.INVALID_COMMAND: 400,
        ErrorCode.SESSION_LIMIT: 429,
    }

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Wrap an ErrorResponse with the status code for its error code."""
        return JSONResponse(
            status_code=status_codes.get(error.error_code, 400),
            content=error.model_dump(mode="json"),
        )

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid puzzle definition"},
            429: {"model": ErrorResponse, "description": "Session limit reached"},
        },
        tags=["Sessions"],
        summary="Create a new puzzle session",
    )
    async def create_session(definition: PuzzleDefinition) -> Union[SessionResponse, JSONResponse]:
        """Validate the puzzle definition and start a session on it."""
        response = api_service.create_session(definition)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        """List all active session IDs."""
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get session status",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        """Get the status and world snapshot of a session."""
        response = api_service.get_session(session_id)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/commands",
        response_model=CommandResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Unparseable command"},
            404: {"model": ErrorResponse},
        },
        tags=["Commands"],
        summary="Submit one command",
    )
    async def submit_command(session_id: str, request: CommandRequest) -> Union[CommandResponse, JSONResponse]:
        """
        Apply a move, undo, restart or debug command.

        Illegal moves return 200 with outcome `illegal`.
        """
        response = api_service.submit_command(session_id, request.command)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.get(
        "/api/v1/sessions/{session_id}/debug",
        response_model=DebugResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Commands"],
        summary="Dump every board and entity",
    )
    async def debug_dump(session_id: str) -> Union[DebugResponse, JSONResponse]:
        response = api_service.debug_dump(session_id)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="End a puzzle session",
    )
    async def end_session(session_id: str) -> EndSessionResponse:
        """End a session and release its world."""
        success = api_service.end_session(session_id)
        return EndSessionResponse(success=success, session_id=session_id)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="parabox-engine",
            version=__version__,
            environment=PARABOX_ENV,
            active_sessions=len(api_service.list_sessions()),
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Parabox Engine API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    return app


# For running directly: uvicorn parabox.api.app:app
app = create_app()
