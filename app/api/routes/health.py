from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check.

    Reports "ok" plus whether the background sweepers are running, so a
    monitor can tell a wedged maintenance loop apart from a dead process.
    """

    sweepers = getattr(request.app.state, "sweepers", [])
    return {
        "status": "ok",
        "sweepers": {sweeper.name: sweeper.running for sweeper in sweepers},
    }
