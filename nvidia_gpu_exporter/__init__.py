"""Prometheus exporter for NVIDIA GPU metrics read through NVML."""

__version__ = "0.1.0"
