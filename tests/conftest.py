"""Shared fixtures: a mocked pynvml module backed by a mutable device list."""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List
from unittest.mock import MagicMock, patch

import pytest

from nvidia_gpu_exporter.collector import nvml


class NVMLError(Exception):
    """Stand-in for pynvml.NVMLError."""


def make_device(
    minor: int,
    uuid: str,
    name: str = "Tesla T4",
    used: int = 2_000_000_000,
    total: int = 16_000_000_000,
    duty: int = 5,
    power: int = 20000,
    temp: int = 40,
    fan: int = 30,
) -> Dict[str, Any]:
    """A fake device; set any key to an NVMLError instance to make that read fail."""
    return {
        "minor": minor,
        "uuid": uuid,
        "name": name,
        "memory": SimpleNamespace(used=used, total=total, free=total - used),
        "util": SimpleNamespace(gpu=duty, memory=0),
        "power": power,
        "temp": temp,
        "fan": fan,
    }


def _unwrap(value: Any) -> Any:
    if isinstance(value, Exception):
        raise value
    return value


def _field(key: str):
    def get(handle, *args):
        return _unwrap(handle[key])

    return get


@pytest.fixture
def devices() -> List[Dict[str, Any]]:
    return [make_device(0, "GPU-aaa"), make_device(1, "GPU-bbb", name="NVIDIA A100")]


@pytest.fixture
def mock_pynvml(devices):
    """Patch the pynvml reference in the nvml helpers with a mock reading `devices`."""
    mock_module = MagicMock()
    mock_module.NVMLError = NVMLError
    mock_module.NVML_TEMPERATURE_GPU = 0

    mock_module.nvmlSystemGetDriverVersion.return_value = "550.54.15"
    mock_module.nvmlDeviceGetCount.side_effect = lambda: len(devices)
    mock_module.nvmlDeviceGetHandleByIndex.side_effect = lambda idx: _unwrap(devices[idx])
    mock_module.nvmlDeviceGetMinorNumber.side_effect = _field("minor")
    mock_module.nvmlDeviceGetUUID.side_effect = _field("uuid")
    mock_module.nvmlDeviceGetName.side_effect = _field("name")
    mock_module.nvmlDeviceGetMemoryInfo.side_effect = _field("memory")
    mock_module.nvmlDeviceGetUtilizationRates.side_effect = _field("util")
    mock_module.nvmlDeviceGetPowerUsage.side_effect = _field("power")
    mock_module.nvmlDeviceGetTemperature.side_effect = _field("temp")
    mock_module.nvmlDeviceGetFanSpeed.side_effect = _field("fan")

    with patch.object(nvml, "pynvml", mock_module):
        yield mock_module


def sample_map(metrics) -> Dict[str, Dict[tuple, float]]:
    """Flatten collected metric families into {metric name: {label values: value}}."""
    out: Dict[str, Dict[tuple, float]] = {}
    for metric in metrics:
        for sample in metric.samples:
            labels = tuple(sample.labels[k] for k in ("minor_number", "uuid", "name") if k in sample.labels)
            out.setdefault(sample.name, {})[labels] = sample.value
    return out


@pytest.fixture
def collect_samples():
    def run(collector):
        return sample_map(collector.collect())

    return run
