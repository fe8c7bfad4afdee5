# nvidia_gpu_exporter/api.py
from __future__ import annotations

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest


def create_app(registry: CollectorRegistry) -> FastAPI:
    """Build the scrape app. Every GET path serves the registry, as `/metrics` would."""
    app = FastAPI(title="NVIDIA GPU Exporter", docs_url=None, redoc_url=None, openapi_url=None)

    # sync handler: runs in the threadpool, the collector lock serializes scrapes
    @app.get("/{path:path}")
    def metrics(path: str) -> Response:
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    return app
