"""
Mechanism Physics Simulation
Discretised voltage-driven plant models for the lift and the arm
"""

import numpy as np
import control as ct
from typing import Tuple


class LinearMechanismSim:
    """
    Position/velocity plant identified from kV and kA

    x' = [[0, 1], [0, -kV/kA]] x + [[0], [1/kA]] u, where u is the voltage left
    over after gravity.
    """

    def __init__(self, kv: float, ka: float, kg: float = 0.0,
                 min_position: float = -float('inf'), max_position: float = float('inf'),
                 period: float = 0.02, initial_position: float = 0.0):
        if kv <= 0 or ka <= 0:
            raise ValueError("Plant kV and kA must be positive")

        self.kg = kg
        self.min_position = min_position
        self.max_position = max_position
        self.period = period

        A = np.array([[0.0, 1.0], [0.0, -kv / ka]])
        B = np.array([[0.0], [1.0 / ka]])
        C = np.eye(2)
        D = np.zeros((2, 1))
        discrete = ct.sample_system(ct.ss(A, B, C, D), period, method='zoh')
        self._Ad = np.asarray(discrete.A)
        self._Bd = np.asarray(discrete.B).reshape(2)

        self.state = np.array([initial_position, 0.0])

    @property
    def position(self) -> float:
        return float(self.state[0])

    @property
    def velocity(self) -> float:
        return float(self.state[1])

    def gravity_voltage(self) -> float:
        return self.kg

    def step(self, voltage: float) -> Tuple[float, float]:
        """Advance one period under ``voltage``; returns (position, velocity)"""
        u = voltage - self.gravity_voltage()
        self.state = self._Ad @ self.state + self._Bd * u

        # Hard stops
        if self.state[0] < self.min_position:
            self.state = np.array([self.min_position, 0.0])
        elif self.state[0] > self.max_position:
            self.state = np.array([self.max_position, 0.0])

        return self.position, self.velocity

    def reset(self, position: float = 0.0):
        self.state = np.array([position, 0.0])


class ElevatorSim(LinearMechanismSim):
    """Lift carriage under constant gravity load"""
    pass


class ArmSim(LinearMechanismSim):
    """Pivot arm, position in degrees from horizontal"""

    def gravity_voltage(self) -> float:
        return self.kg * np.cos(np.radians(self.position))
