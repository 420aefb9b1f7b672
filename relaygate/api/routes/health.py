"""Health check endpoint."""

from fastapi import APIRouter, Request

from relaygate import __version__

router = APIRouter(tags=["health"])


@router.get("/api/health")
async def health_check(request: Request) -> dict:
    manager = request.app.state.sessions
    return {
        "status": "ok",
        "version": __version__,
        "status_store": manager.store.name,
        "active_sessions": len(manager.active_sessions()),
    }
