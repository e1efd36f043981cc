"""
Device telemetry for asr-bench.

Read-only signals sampled opportunistically during a run: device name,
OS version string, a coarse thermal-state label derived from the hottest
kernel thermal zone, and the process's peak resident memory.
"""

from __future__ import annotations

import enum
import platform
import resource
import sys
from pathlib import Path

import structlog

logger = structlog.get_logger()

_THERMAL_ROOT = Path("/sys/class/thermal")

# Upper bounds (°C) for each label; anything hotter is critical.
_THERMAL_BANDS: tuple[tuple[float, str], ...] = (
    (60.0, "Nominal"),
    (75.0, "Fair"),
    (90.0, "Serious"),
)


class ThermalState(str, enum.Enum):
    """Coarse thermal pressure label."""

    NOMINAL = "Nominal"
    FAIR = "Fair"
    SERIOUS = "Serious"
    CRITICAL = "Critical"
    UNKNOWN = "Unknown"


def classify_temperature(celsius: float | None) -> ThermalState:
    """Map a temperature reading onto a :class:`ThermalState`."""
    if celsius is None:
        return ThermalState.UNKNOWN
    for upper, label in _THERMAL_BANDS:
        if celsius < upper:
            return ThermalState(label)
    return ThermalState.CRITICAL


class DeviceTelemetry:
    """Sample host signals reported alongside benchmark results.

    Args:
        device_name: Overrides the host name.
        thermal_root: Directory holding ``thermal_zone*/temp`` files.
    """

    def __init__(
        self,
        *,
        device_name: str | None = None,
        thermal_root: Path = _THERMAL_ROOT,
    ) -> None:
        self._device_name = device_name
        self._thermal_root = thermal_root

    def device_name(self) -> str:
        return self._device_name or platform.node() or "unknown-device"

    def os_version(self) -> str:
        return platform.platform()

    def max_temperature(self) -> float | None:
        """Hottest thermal-zone reading in °C, or ``None`` if unavailable."""
        readings: list[float] = []
        for temp_file in sorted(self._thermal_root.glob("thermal_zone*/temp")):
            try:
                readings.append(int(temp_file.read_text().strip()) / 1000.0)
            except (OSError, ValueError):
                continue
        return max(readings) if readings else None

    def thermal_state(self) -> ThermalState:
        return classify_temperature(self.max_temperature())

    def peak_memory_bytes(self) -> int:
        """Peak resident set size of this process."""
        peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        # ru_maxrss is bytes on macOS, KiB on Linux.
        return peak if sys.platform == "darwin" else peak * 1024
