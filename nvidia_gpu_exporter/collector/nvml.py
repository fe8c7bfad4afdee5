from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Tuple

import pynvml
from pydantic import BaseModel, Field

# -----------------------------
# Types
# -----------------------------

class NVMLCallError(RuntimeError):
    """A process-level NVML call (init, driver version, device count) failed."""


class DeviceIdentity(BaseModel):
    minor_number: int
    uuid: str
    name: str

    def label_values(self) -> Tuple[str, str, str]:
        return str(self.minor_number), self.uuid, self.name


class FieldFailure(BaseModel):
    call: str
    index: int
    error: str


class DeviceReading(BaseModel):
    """Everything read from one device in one cycle.

    Fields left as None were not read; the matching entry in `failures`
    says why. A reading without `identity` carries no usable samples.
    """

    index: int
    identity: Optional[DeviceIdentity] = None
    memory_used_bytes: Optional[int] = None
    memory_total_bytes: Optional[int] = None
    duty_cycle: Optional[int] = None
    power_usage_milliwatts: Optional[int] = None
    temperature_celsius: Optional[int] = None
    fanspeed_percent: Optional[int] = None
    failures: List[FieldFailure] = Field(default_factory=list)

    def failed(self, call: str) -> bool:
        return any(f.call == call for f in self.failures)

# -----------------------------
# Helpers
# -----------------------------

def _decode(value: Any) -> str:
    # pynvml may return bytes in some versions
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def _read(reading: DeviceReading, call: str, fn: Callable[..., Any], *args: Any) -> Optional[Any]:
    """Run one NVML accessor, recording a failure on the reading instead of raising."""
    try:
        return fn(*args)
    except (pynvml.NVMLError, UnicodeDecodeError) as exc:
        reading.failures.append(FieldFailure(call=call, index=reading.index, error=str(exc)))
        return None

# -----------------------------
# Public API
# -----------------------------

def init() -> None:
    try:
        pynvml.nvmlInit()
    except pynvml.NVMLError as exc:
        raise NVMLCallError(f"nvmlInit() error: {exc}") from exc


def shutdown() -> None:
    try:
        pynvml.nvmlShutdown()
    except pynvml.NVMLError as exc:
        logging.warning("nvmlShutdown() error: %s", exc)


def driver_version() -> str:
    try:
        return _decode(pynvml.nvmlSystemGetDriverVersion())
    except (pynvml.NVMLError, UnicodeDecodeError) as exc:
        raise NVMLCallError(f"SystemDriverVersion() error: {exc}") from exc


def device_count() -> int:
    try:
        return int(pynvml.nvmlDeviceGetCount())
    except pynvml.NVMLError as exc:
        raise NVMLCallError(f"DeviceCount() error: {exc}") from exc


def read_device(index: int, fan_speed: bool = True) -> DeviceReading:
    """Read identity and gauges for the device at `index`.

    Handle and identity failures leave the reading without identity and stop
    early. Any later failure only drops its own field(s). Each accessor is
    called at most once.
    """
    reading = DeviceReading(index=index)

    handle = _read(reading, "DeviceHandleByIndex", pynvml.nvmlDeviceGetHandleByIndex, index)
    if handle is None:
        return reading

    minor = _read(reading, "MinorNumber", pynvml.nvmlDeviceGetMinorNumber, handle)
    if minor is None:
        return reading
    uuid = _read(reading, "UUID", lambda h: _decode(pynvml.nvmlDeviceGetUUID(h)), handle)
    if uuid is None:
        return reading
    name = _read(reading, "Name", lambda h: _decode(pynvml.nvmlDeviceGetName(h)), handle)
    if name is None:
        return reading
    reading.identity = DeviceIdentity(minor_number=minor, uuid=uuid, name=name)

    mem = _read(reading, "MemoryInfo", pynvml.nvmlDeviceGetMemoryInfo, handle)
    if mem is not None:
        reading.memory_used_bytes = int(mem.used)
        reading.memory_total_bytes = int(mem.total)

    util = _read(reading, "UtilizationRates", pynvml.nvmlDeviceGetUtilizationRates, handle)
    if util is not None:
        reading.duty_cycle = int(util.gpu)

    power = _read(reading, "PowerUsage", pynvml.nvmlDeviceGetPowerUsage, handle)
    if power is not None:
        reading.power_usage_milliwatts = int(power)

    temp = _read(
        reading, "Temperature", pynvml.nvmlDeviceGetTemperature, handle, pynvml.NVML_TEMPERATURE_GPU
    )
    if temp is not None:
        reading.temperature_celsius = int(temp)

    if fan_speed:
        fan = _read(reading, "FanSpeed", pynvml.nvmlDeviceGetFanSpeed, handle)
        if fan is not None:
            reading.fanspeed_percent = int(fan)

    return reading
