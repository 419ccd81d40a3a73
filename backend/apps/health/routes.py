"""Health routes - progress store status and whether a document is open."""

from fastapi import APIRouter

from apps.health.handlers import check_health
from apps.health.handlers.check_health import HealthResponse

router = APIRouter(prefix="/health", tags=["Health"])

# GET /health - Progress store reachability, open-document flag
router.get(
    "",
    response_model=HealthResponse,
    summary="Progress store and reading session status",
)(check_health)
