"""
Health check and monitoring endpoints for production readiness.
"""
import time
from collections import Counter
from typing import Any, Dict, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine

from celebstyle_gateway.config import settings
from celebstyle_gateway.logging_config import get_logger
from celebstyle_gateway.timeutils import utcnow

router = APIRouter(prefix="/api/v1", tags=["health"])


class Metrics:
    """Simple in-memory metrics storage"""
    def __init__(self):
        self.start_time = time.time()
        self.request_count = 0
        self.admitted_count = 0
        self.rejections: Counter = Counter()

    def increment_requests(self):
        self.request_count += 1

    def increment_gateway(self, admitted: bool, reason: Optional[str] = None):
        if admitted:
            self.admitted_count += 1
        else:
            self.rejections[reason or "unknown"] += 1

    def get_uptime_seconds(self) -> float:
        return time.time() - self.start_time

    def reset(self):
        self.__init__()

    def to_dict(self) -> Dict[str, Any]:
        uptime = self.get_uptime_seconds()
        rejected = sum(self.rejections.values())
        gated = self.admitted_count + rejected
        return {
            "uptime_seconds": round(uptime, 2),
            "uptime_human": self._format_uptime(uptime),
            "requests": {
                "total": self.request_count,
                "rate_per_second": round(self.request_count / uptime, 2) if uptime > 0 else 0,
            },
            "gateway": {
                "total": gated,
                "admitted": self.admitted_count,
                "rejected": rejected,
                "rejected_by_reason": dict(self.rejections),
                "admit_rate": round(self.admitted_count / gated * 100, 2) if gated > 0 else 0,
            },
        }

    @staticmethod
    def _format_uptime(seconds: float) -> str:
        """Format uptime in human-readable format"""
        days = int(seconds // 86400)
        hours = int((seconds % 86400) // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = int(seconds % 60)

        if days > 0:
            return f"{days}d {hours}h {minutes}m {secs}s"
        elif hours > 0:
            return f"{hours}h {minutes}m {secs}s"
        elif minutes > 0:
            return f"{minutes}m {secs}s"
        else:
            return f"{secs}s"


# Global metrics instance
metrics = Metrics()


def check_database(bind: Optional[Engine] = None) -> Dict[str, Any]:
    """Check database connectivity"""
    if bind is None:
        from celebstyle_gateway.database import engine as bind

    try:
        start = time.time()
        with bind.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        duration_ms = (time.time() - start) * 1000

        return {
            "status": "healthy",
            "response_time_ms": round(duration_ms, 2),
        }
    except Exception as e:
        logger = get_logger("health")
        logger.error("database_health_check_failed", error=str(e))
        return {
            "status": "unhealthy",
            "error": str(e),
        }


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "service": settings.app_name,
    }


@router.get("/ready")
def readiness_check():
    """
    Readiness check endpoint.
    Returns 200 only if the database answers.
    """
    checks = {"database": check_database()}
    is_ready = all(check.get("status") == "healthy" for check in checks.values())

    if not is_ready:
        get_logger("health").warning("readiness_check_failed", checks=checks)

    return JSONResponse(
        content={
            "ready": is_ready,
            "timestamp": utcnow().isoformat(),
            "checks": checks,
        },
        status_code=200 if is_ready else 503,
    )


@router.get("/metrics")
async def get_metrics():
    """
    Get application metrics.
    Returns uptime, request count and gateway admission stats.
    """
    return {
        "timestamp": utcnow().isoformat(),
        "metrics": metrics.to_dict(),
    }


@router.get("/version")
async def get_version():
    """
    Get application version and configuration info.
    """
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "timestamp": utcnow().isoformat(),
        "environment": settings.environment,
        "debug": settings.debug,
        "features": {
            "rate_limiting": settings.rate_limit_enabled,
            "key_shown_on_dashboard": settings.expose_key_on_dashboard,
        },
    }


__all__ = ["router", "metrics", "check_database"]
