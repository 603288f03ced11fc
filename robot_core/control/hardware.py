"""
Hardware Interfaces

Motor outputs owned by mechanism controllers, the registry that enforces
single ownership of every output channel, and the game-piece range sensor.
"""

import numpy as np
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Sequence


class OutputConflictError(ValueError):
    """Two controllers were configured to drive the same output channel"""
    pass


class MotorOutput(ABC):
    """
    One physical output: a motor or a group of motors driven together
    """

    def __init__(self, channels: Sequence[int], max_voltage: float = 12.0):
        """
        Args:
            channels: CAN IDs of every motor in the group
            max_voltage: Applied voltage is clamped to +/- this value
        """
        self.channels = tuple(channels)
        self.max_voltage = max_voltage
        self.applied_voltage = 0.0

    def set_voltage(self, volts: float):
        self.applied_voltage = float(np.clip(volts, -self.max_voltage, self.max_voltage))
        self._write(self.applied_voltage)

    def _write(self, volts: float):
        """Push the clamped voltage to the device"""
        pass

    @abstractmethod
    def get_position(self) -> float:
        pass

    @abstractmethod
    def get_velocity(self) -> float:
        pass


class SimulatedMotor(MotorOutput):
    """
    Motor backed by an optional physics model

    Without a plant the position stays at zero, which suits rollers.
    """

    def __init__(self, channels: Sequence[int], plant=None, max_voltage: float = 12.0):
        super().__init__(channels, max_voltage)
        self.plant = plant

    def get_position(self) -> float:
        return self.plant.position if self.plant is not None else 0.0

    def get_velocity(self) -> float:
        return self.plant.velocity if self.plant is not None else 0.0

    def update(self):
        """Advance the plant by one period under the applied voltage"""
        if self.plant is not None:
            self.plant.step(self.applied_voltage)


class OutputRegistry:
    """
    Records which controller owns each output channel
    """

    def __init__(self):
        self._owners: Dict[int, Any] = {}

    def claim(self, motor: MotorOutput, owner: Any):
        """
        Claim every channel of ``motor`` for ``owner``

        Ownership is held by the controller object, so two controllers that
        share a name still conflict.

        Raises:
            OutputConflictError: If any channel already belongs to another owner
        """
        for channel in motor.channels:
            current = self._owners.get(channel)
            if current is not None and current is not owner:
                raise OutputConflictError(
                    f"Output channel {channel} is owned by '{_owner_name(current)}', "
                    f"cannot assign to '{_owner_name(owner)}'"
                )

        for channel in motor.channels:
            self._owners[channel] = owner

    def owner_of(self, channel: int) -> Optional[str]:
        owner = self._owners.get(channel)
        return _owner_name(owner) if owner is not None else None

    @property
    def owners(self) -> Dict[int, str]:
        return {channel: _owner_name(owner) for channel, owner in self._owners.items()}


def _owner_name(owner: Any) -> str:
    return getattr(owner, "name", str(owner))


class GamePieceSensor:
    """
    Time-of-flight range sensor that sees a game piece when it is loaded
    """

    def __init__(self, distance_supplier: Callable[[], Optional[float]],
                 threshold_mm: float = 50.0):
        """
        Args:
            distance_supplier: Returns the measured distance in millimeters,
                or None when the reading is invalid
            threshold_mm: Readings closer than this mean a piece is present
        """
        self.distance_supplier = distance_supplier
        self.threshold_mm = threshold_mm

    def has_game_piece(self) -> bool:
        distance = self.distance_supplier()
        if distance is None:
            return False
        return distance < self.threshold_mm
