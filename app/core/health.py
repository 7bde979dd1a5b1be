from __future__ import annotations

import asyncio
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.core.settings import settings
from app.services.container import ServiceContainer

APP_VERSION = "0.1.0"


def _check_data_dir_sync(path: Path) -> dict[str, str]:
    if not path.is_dir():
        return {"status": "error", "error": f"{path} does not exist"}
    if not os.access(path, os.W_OK):
        return {"status": "error", "error": f"{path} is not writable"}
    return {"status": "ok"}


async def _check_data_dir(container: ServiceContainer | None) -> dict[str, str]:
    path = container.data_dir if container is not None else Path(settings.data_dir)
    return await asyncio.to_thread(_check_data_dir_sync, path)


async def _check_workflows(container: ServiceContainer | None) -> dict[str, Any]:
    if container is None or not container.runner.running:
        return {"status": "error", "error": "workflow runner not running"}
    return {"status": "ok", "pending": container.runner.pending}


async def _check_api() -> dict[str, str]:
    return {"status": "ok", "version": APP_VERSION}


def _overall_status(checks: dict[str, dict[str, Any]]) -> tuple[str, bool]:
    ready = all(check.get("status") == "ok" for check in checks.values())
    return ("ok" if ready else "degraded", ready)


async def live_payload() -> dict[str, str]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def ready_payload(container: ServiceContainer | None) -> dict[str, Any]:
    checks = {
        "api": await _check_api(),
        "storage": await _check_data_dir(container),
        "workflows": await _check_workflows(container),
    }
    overall, ready = _overall_status(checks)
    return {
        "status": overall,
        "ready": ready,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
