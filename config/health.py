"""Liveness report: database, Redis and the realtime gateway."""

from __future__ import annotations

import logging
from typing import Any

import redis
from django.apps import apps
from django.conf import settings
from django.db import connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)

# Components whose failure makes the service unusable.
REQUIRED = ("db", "redis")


def check_db() -> dict[str, Any]:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Health check: database unavailable: %s", exc)
        return {"ok": False, "error": str(exc)}
    return {"ok": True}


def check_redis() -> dict[str, Any]:
    url = getattr(settings, "REDIS_URL", None)
    if not url:
        return {"ok": False, "error": "REDIS_URL not configured"}
    try:
        redis.Redis.from_url(
            url,
            socket_timeout=0.5,
            socket_connect_timeout=0.5,
        ).ping()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Health check: redis unavailable: %s", exc)
        return {"ok": False, "error": str(exc)}
    return {"ok": True}


def check_realtime() -> dict[str, Any]:
    gateway = apps.get_app_config("realtime").gateway
    if gateway is None:
        return {"ok": False, "error": "gateway not started"}
    return {"ok": True, "online_users": len(gateway.presence.online_user_ids())}


def health(request):
    components = {
        "db": check_db(),
        "redis": check_redis(),
        "realtime": check_realtime(),
    }
    healthy = [components[name].get("ok", False) for name in REQUIRED]

    if all(healthy):
        status, http_status = "ok", 200
    elif any(healthy):
        status, http_status = "degraded", 503
    else:
        status, http_status = "down", 503

    return JsonResponse(
        {"status": status, "components": components},
        status=http_status,
    )
