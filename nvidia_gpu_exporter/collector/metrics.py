from __future__ import annotations

from typing import NamedTuple, Tuple

NAMESPACE = "nvidia_gpu"
LABELS: Tuple[str, ...] = ("minor_number", "uuid", "name")

NUM_DEVICES = ("num_devices", "Number of GPU devices")


class DeviceMetric(NamedTuple):
    attr: str  # DeviceReading attribute, also the metric name under NAMESPACE
    help: str


# Emission order
DEVICE_METRICS: Tuple[DeviceMetric, ...] = (
    DeviceMetric("memory_used_bytes", "Memory used by the GPU device in bytes"),
    DeviceMetric("memory_total_bytes", "Total memory of the GPU device in bytes"),
    DeviceMetric(
        "duty_cycle",
        "Percent of time over the past sample period during which one or more kernels "
        "were executing on the GPU device",
    ),
    DeviceMetric("power_usage_milliwatts", "Power usage of the GPU device in milliwatts"),
    DeviceMetric("temperature_celsius", "Temperature of the GPU device in celsius"),
    DeviceMetric("fanspeed_percent", "Fanspeed of the GPU device as a percent of its maximum"),
)
