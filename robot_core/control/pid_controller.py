"""
PID Controller
Position feedback for the profiled mechanisms, stepped once per control tick
"""

import numpy as np
from typing import Dict, List, Optional
from dataclasses import dataclass
import matplotlib.pyplot as plt


@dataclass
class PIDGains:
    """Feedback gains, volts per unit of error"""
    kp: float = 0.0
    ki: float = 0.0
    kd: float = 0.0


@dataclass
class PIDSample:
    """One recorded controller step"""
    time: float
    setpoint: float
    measurement: float
    proportional: float
    integral: float
    derivative: float
    output: float


class PIDController:
    """
    Discrete PID on a fixed period

    The derivative acts on the measurement, so a new setpoint from the motion
    profile never produces a derivative spike.
    """

    def __init__(self, kp: float = 0.0, ki: float = 0.0, kd: float = 0.0,
                 period: float = 0.02,
                 output_min: float = -float('inf'), output_max: float = float('inf'),
                 integral_limit: Optional[float] = None,
                 record_history: bool = False):
        """
        Args:
            kp: Proportional gain
            ki: Integral gain
            kd: Derivative gain
            period: Control period in seconds
            output_min: Lowest output
            output_max: Highest output
            integral_limit: Clamp on the accumulated error integral
            record_history: Keep every step for plot_response
        """
        self.gains = PIDGains(kp, ki, kd)
        self.period = period
        self.output_min = output_min
        self.output_max = output_max
        self.integral_limit = integral_limit if integral_limit is not None else float('inf')
        self.record_history = record_history

        self.history: List[PIDSample] = []
        self.elapsed = 0.0
        self.reset()

    def reset(self):
        """Forget the integral and the previous measurement"""
        self.integral = 0.0
        self.previous_measurement: Optional[float] = None

    def set_gains(self, kp: Optional[float] = None, ki: Optional[float] = None,
                  kd: Optional[float] = None):
        if kp is not None:
            self.gains.kp = kp
        if ki is not None:
            self.gains.ki = ki
        if kd is not None:
            self.gains.kd = kd

    def update(self, setpoint: float, measurement: float, dt: Optional[float] = None) -> float:
        """
        Step the controller

        Args:
            setpoint: Profile setpoint
            measurement: Measured position
            dt: Step length, the control period when omitted

        Returns:
            Feedback output
        """
        if dt is None or dt <= 0:
            dt = self.period

        error = setpoint - measurement
        self.integral = float(np.clip(self.integral + error * dt,
                                      -self.integral_limit, self.integral_limit))

        if self.previous_measurement is None:
            rate = 0.0
        else:
            rate = (measurement - self.previous_measurement) / dt
        self.previous_measurement = measurement

        proportional = self.gains.kp * error
        integral = self.gains.ki * self.integral
        derivative = -self.gains.kd * rate
        output = float(np.clip(proportional + integral + derivative,
                               self.output_min, self.output_max))

        self.elapsed += dt
        if self.record_history:
            self.history.append(PIDSample(self.elapsed, setpoint, measurement,
                                          proportional, integral, derivative, output))
        return output

    def last_components(self) -> Dict[str, float]:
        """Proportional, integral and derivative terms of the last recorded step"""
        if not self.history:
            return {'proportional': 0.0, 'integral': 0.0, 'derivative': 0.0}
        last = self.history[-1]
        return {'proportional': last.proportional, 'integral': last.integral,
                'derivative': last.derivative}

    def clear_history(self):
        self.history.clear()
        self.elapsed = 0.0

    def plot_response(self, title: str = "Mechanism Tracking"):
        """Plot recorded tracking and output voltage"""
        if not self.history:
            return

        times = [s.time for s in self.history]
        fig, (tracking, voltage) = plt.subplots(2, 1, figsize=(10, 7), sharex=True)

        tracking.plot(times, [s.setpoint for s in self.history], 'r--', label='Setpoint')
        tracking.plot(times, [s.measurement for s in self.history], 'b-', label='Measured')
        tracking.set_ylabel('Position')
        tracking.legend()
        tracking.grid(True)

        voltage.plot(times, [s.proportional for s in self.history], 'g-', linewidth=1, label='P')
        voltage.plot(times, [s.integral for s in self.history], 'c-', linewidth=1, label='I')
        voltage.plot(times, [s.derivative for s in self.history], 'm-', linewidth=1, label='D')
        voltage.plot(times, [s.output for s in self.history], 'k-', linewidth=2, label='Output')
        voltage.set_xlabel('Time (s)')
        voltage.set_ylabel('Feedback (V)')
        voltage.legend()
        voltage.grid(True)

        fig.suptitle(title)
        fig.tight_layout()
        plt.show()
