from typing import Any, Dict

from fastapi import APIRouter, Depends

from .dependencies import Container, get_container

router = APIRouter()


@router.get("/healthz")
async def health_check(c: Container = Depends(get_container)) -> Dict[str, Any]:
    """Venue readiness plus session-table size."""
    venues = {}
    for provider in c.venues:
        status = await provider.health_check()
        status["enabled"] = c.venues.is_enabled(provider.venue_id)
        venues[provider.venue_id] = status

    available = sum(1 for s in venues.values() if s["enabled"] and s["status"] == "ok")
    return {
        "status": "healthy" if available > 0 else "degraded",
        "venues": venues,
        "available_venues": available,
        "active_sessions": len(c.sessions.active_sessions()),
        "reaper_running": c.sessions.reaper_running,
    }
