#!/usr/bin/env python
"""
nvidia-gpu-exporter [--web.listen-address ADDR]

Example:
    nvidia-gpu-exporter --web.listen-address=127.0.0.1:9445
"""
from __future__ import annotations

import logging
import os
from typing import Tuple

import typer
import uvicorn
from prometheus_client import REGISTRY

from nvidia_gpu_exporter.api import create_app
from nvidia_gpu_exporter.collector import nvml
from nvidia_gpu_exporter.collector.gpu_collector import GPUCollector

# *** How to override at runtime:
# export GPU_EXPORTER_LISTEN_ADDRESS=127.0.0.1:9445
# export GPU_EXPORTER_LOG_LEVEL=DEBUG
LISTEN_ADDRESS = os.getenv("GPU_EXPORTER_LISTEN_ADDRESS", ":9445")
LOG_LEVEL = os.getenv("GPU_EXPORTER_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s  %(levelname)s %(message)s",
)

app = typer.Typer(add_completion=False)


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split a Go-style listen address (':9445', 'host:port', '[::1]:port')."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit() or int(port) > 65535:
        raise typer.BadParameter(f"invalid listen address {address!r}, expected [host]:port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise typer.BadParameter(f"invalid listen address {address!r}, IPv6 hosts must be bracketed")
    # empty host binds every IPv4 interface; use "[::]:port" for dual-stack
    return host or "0.0.0.0", int(port)


@app.command()
def main(
    listen_address: str = typer.Option(
        LISTEN_ADDRESS,
        "--web.listen-address",
        "-web.listen-address",
        help="Address to listen on for web interface and telemetry.",
    ),
) -> None:
    host, port = parse_listen_address(listen_address)

    try:
        nvml.init()
    except nvml.NVMLCallError as exc:
        logging.critical("Couldn't initialize NVML: %s. Make sure NVML is in the shared library search path.", exc)
        raise typer.Exit(code=1)

    try:
        try:
            logging.info("SystemDriverVersion(): %s", nvml.driver_version())
        except nvml.NVMLCallError as exc:
            logging.error("%s", exc)

        REGISTRY.register(GPUCollector())
        logging.info("Listening on %s:%d", host, port)
        uvicorn.run(create_app(REGISTRY), host=host, port=port, log_level=LOG_LEVEL.lower())
    finally:
        nvml.shutdown()


if __name__ == "__main__":
    app()
