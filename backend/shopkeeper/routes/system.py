# Overview: Flask API routes for service health and build information.

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy import func, text

from ..extensions import db
from ..models import Client, Product, Sale
from ..services.cache_service import get_cache
from shopkeeper.time_utils import to_utc_z, utcnow

API_VERSION = "1.0.0"

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def probe_database() -> dict:
    """Round-trip the database and count the core documents."""
    started = time.perf_counter()
    try:
        db.session.execute(text("SELECT 1"))
        counts = {
            "products": db.session.query(func.count(Product.id)).scalar(),
            "clients": db.session.query(func.count(Client.id)).scalar(),
            "sales": db.session.query(func.count(Sale.id)).scalar(),
        }
    except Exception:
        current_app.logger.exception("Database probe failed")
        db.session.rollback()
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(started), "error": "Database error"}

    return {"status": "healthy", "latency_ms": _elapsed_ms(started), "details": counts}


def probe_cache() -> dict:
    cache = get_cache()
    return {
        "status": "healthy",
        "details": {"entries": len(cache), "default_ttl_seconds": cache.default_ttl},
    }


@system_bp.get("/health")
def health():
    """
    200 when the database answers, 503 otherwise.

    The cache lives in process memory and cannot be down on its own.
    """
    started = time.perf_counter()
    services = {"database": probe_database(), "cache": probe_cache()}
    healthy = services["database"]["status"] == "healthy"

    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": _elapsed_ms(started),
        "services": services,
    }
    return body, 200 if healthy else 503


@system_bp.get("/version")
def version():
    """Build info for deployment debugging; no secrets or paths."""
    return {
        "api_version": API_VERSION,
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
