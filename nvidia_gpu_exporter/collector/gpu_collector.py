from __future__ import annotations

import logging
import threading
from typing import Dict, List

from prometheus_client import Gauge
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from . import nvml
from .metrics import DEVICE_METRICS, LABELS, NAMESPACE, NUM_DEVICES


class GPUCollector(Collector):
    """Prometheus collector that reads every GPU through NVML on each scrape.

    Only one collection runs at a time; the gauges are cleared and rebuilt
    inside the lock so a scrape never sees samples from two cycles.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # Cleared for good after the first failed fan speed read
        self.fan_speed_enabled = True

        name, help_text = NUM_DEVICES
        self.num_devices = Gauge(name, help_text, namespace=NAMESPACE, registry=None)
        self.gauges: Dict[str, Gauge] = {
            m.attr: Gauge(m.attr, m.help, LABELS, namespace=NAMESPACE, registry=None)
            for m in DEVICE_METRICS
        }

    def describe(self) -> List[Metric]:
        metrics = list(self.num_devices.describe())
        for gauge in self.gauges.values():
            metrics.extend(gauge.describe())
        return metrics

    def collect(self) -> List[Metric]:
        with self._lock:
            return self._collect_cycle()

    def _collect_cycle(self) -> List[Metric]:
        for gauge in self.gauges.values():
            gauge.clear()

        try:
            count = nvml.device_count()
        except nvml.NVMLCallError as exc:
            logging.error("%s", exc)
            return []

        self.num_devices.set(count)
        metrics = list(self.num_devices.collect())

        for index in range(count):
            reading = nvml.read_device(index, fan_speed=self.fan_speed_enabled)
            for failure in reading.failures:
                logging.error("%s() error for device %d: %s", failure.call, failure.index, failure.error)

            if reading.failed("FanSpeed"):
                logging.warning("Fan speed is not readable on this host; no longer collecting it")
                self.fan_speed_enabled = False

            if reading.identity is None:
                continue

            labels = reading.identity.label_values()
            for attr, gauge in self.gauges.items():
                value = getattr(reading, attr)
                if value is not None:
                    gauge.labels(*labels).set(value)

        for gauge in self.gauges.values():
            metrics.extend(gauge.collect())
        return metrics
