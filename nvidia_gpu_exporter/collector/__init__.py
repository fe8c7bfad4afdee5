"""nvidia_gpu_exporter.collector
Scrape-time GPU metrics collector.

Modules
-------
gpu_collector : Prometheus collector; one locked NVML read cycle per scrape
nvml          : pynvml helpers (init/shutdown, device count, per-device reads)
metrics       : metric names, help texts and the label schema
"""

__all__ = ["gpu_collector", "nvml", "metrics"]
