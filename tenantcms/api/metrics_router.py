"""
Metrics endpoint for Prometheus scraping.

Exposes the access-control counters from ``tenantcms.core.metrics`` next to
the HTTP ones. When the app runs under several uvicorn workers,
``PROMETHEUS_MULTIPROC_DIR`` must be set so every worker's samples are
merged into one response.
"""

import os

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, generate_latest, multiprocess

router = APIRouter(tags=["Metrics"])


def _registry() -> CollectorRegistry:
    if "PROMETHEUS_MULTIPROC_DIR" not in os.environ:
        return REGISTRY
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    return registry


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    return Response(
        content=generate_latest(_registry()),
        media_type=CONTENT_TYPE_LATEST,
    )
