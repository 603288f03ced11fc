"""
Telemetry Module
Write-only dashboard sinks; publishing never interferes with control
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict


class TelemetrySink(ABC):
    """Dashboard key/value sink"""

    @abstractmethod
    def put_boolean(self, key: str, value: bool):
        pass

    @abstractmethod
    def put_number(self, key: str, value: float):
        pass

    @abstractmethod
    def put_string(self, key: str, value: str):
        pass


class DictTelemetrySink(TelemetrySink):
    """In-memory sink, used in simulation and tests"""

    def __init__(self):
        self.values: Dict[str, Any] = {}

    def put_boolean(self, key: str, value: bool):
        self.values[key] = bool(value)

    def put_number(self, key: str, value: float):
        self.values[key] = float(value)

    def put_string(self, key: str, value: str):
        self.values[key] = str(value)

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)


def publish(sink, key: str, value: Any):
    """
    Publish one value, dispatching on its type

    Failures are logged and dropped.
    """
    if sink is None:
        return

    try:
        if isinstance(value, bool):
            sink.put_boolean(key, value)
        elif isinstance(value, (int, float)):
            sink.put_number(key, float(value))
        else:
            sink.put_string(key, str(value))
    except Exception as e:
        logging.warning(f"Telemetry publish failed for {key}: {e}")
