"""Observability helpers (Sentry init & common scrubbing).

Centralises Sentry initialisation so configuration does not drift.
Initialisation is a no-op when no DSN is configured.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from fuelops.core.config import settings

logger = logging.getLogger(__name__)

_SCRUBBED_HEADERS = ("authorization", "cookie", "set-cookie", "x-api-key")


def _before_send(event: Dict[str, Any], hint: Dict[str, Any] | None = None):
    """Scrub obvious PII / secrets before sending to Sentry.

    - Drop Authorization & Cookie headers
    - Remove request data/body (keep method + URL); dispersion forms carry
      fueler names and image links
    """
    req = event.get("request") or {}
    headers = req.get("headers") or {}
    for k in list(headers.keys()):
        if k.lower() in _SCRUBBED_HEADERS:
            headers.pop(k, None)
    req.pop("data", None)
    event["request"] = req
    return event


def _enabled() -> bool:
    return bool(settings.SENTRY_DSN)


def init_sentry(service: str) -> bool:
    """Initialise Sentry once for a given process.

    Returns True if Sentry was initialised; False otherwise.
    """
    if not _enabled():
        return False
    if getattr(init_sentry, "_done", False):  # prevent duplicate init in same process
        return True
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[FastApiIntegration(), SqlalchemyIntegration()],
        traces_sample_rate=float(settings.SENTRY_TRACES_SAMPLE_RATE or 0),
        profiles_sample_rate=float(settings.SENTRY_PROFILES_SAMPLE_RATE or 0),
        environment=settings.ENVIRONMENT,
        release=settings.SENTRY_RELEASE,
        before_send=_before_send,
    )
    sentry_sdk.set_tag("service", service)
    init_sentry._done = True  # type: ignore[attr-defined]
    logger.info("Sentry initialised for %s", service)
    return True


def capture_exception(exc: BaseException) -> None:
    if _enabled():
        sentry_sdk.capture_exception(exc)


def sentry_breadcrumb(category: str, message: str, level: str = "info", data: Optional[Dict[str, Any]] = None) -> None:
    """Add a breadcrumb for important workflow steps (ticket reviews, flagged deviations)."""
    if not _enabled():
        return
    sentry_sdk.add_breadcrumb(
        category=category,
        message=message,
        level=level,
        data=data or {},
    )


def sentry_metric_inc(name: str, value: int = 1, tags: Optional[Dict[str, Any]] = None) -> None:
    """Increment a counter through Sentry Metrics.

    Metrics are an optional SDK feature; older or newer SDK builds without
    the ``metrics`` module make this a no-op.
    """
    if not _enabled():
        return
    metrics = getattr(sentry_sdk, "metrics", None)
    if metrics is None or not hasattr(metrics, "increment"):
        return
    # Coerce tag values to short strings to avoid PII/large payloads
    safe_tags = {str(k): str(v)[:64] for k, v in (tags or {}).items()}
    try:
        metrics.increment(name, value=value, tags=safe_tags)
    except Exception:  # metrics must never break a request
        logger.debug("Sentry metric %s not recorded", name, exc_info=True)


__all__ = ["init_sentry", "capture_exception", "sentry_breadcrumb", "sentry_metric_inc"]
