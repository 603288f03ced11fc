"""
Mechanism Controllers

One controller per physical degree of freedom. Every controller exposes the
same goal-based interface so game actions can be composed without knowing
which mechanism they drive.
"""

import numpy as np
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .hardware import MotorOutput, OutputRegistry
from .pid_controller import PIDController
from .feedforward import (
    ElevatorFeedforward, ArmFeedforward, FeedforwardGains,
    TrapezoidProfile, ProfileConstraints, ProfileState
)
from ..commands import Command, FunctionalCommand, InstantCommand

# Slack so a measurement exactly on the band edge counts as inside
TOLERANCE_EPSILON = 1e-9


@dataclass
class MechanismGoal:
    """Target for one mechanism; replaced, never queued"""
    target: float
    tolerance: float


class MechanismController(ABC):
    """
    Goal-based controller that exclusively owns one motor output
    """

    def __init__(self, name: str, motor: MotorOutput, tolerance: float,
                 registry: Optional[OutputRegistry] = None):
        """
        Args:
            name: Mechanism name
            motor: The output this controller drives
            tolerance: Default goal tolerance
            registry: Ownership registry shared by every controller on the robot

        Raises:
            OutputConflictError: If the motor is already owned by another controller
        """
        self.name = name
        self.motor = motor
        self.tolerance = tolerance
        self.registry = registry if registry is not None else OutputRegistry()
        self.registry.claim(motor, self)

        self.goal: Optional[MechanismGoal] = None

    @abstractmethod
    def get_measurement(self) -> float:
        """Measured value in the same units as the goal target"""
        pass

    @abstractmethod
    def periodic(self):
        """Update the output, called once per control tick"""
        pass

    def is_at_goal(self) -> bool:
        if self.goal is None:
            return False
        return abs(self.get_measurement() - self.goal.target) <= self.goal.tolerance + TOLERANCE_EPSILON

    def apply_goal(self, target: float, tolerance: Optional[float] = None):
        """Replace the active goal immediately"""
        self.goal = MechanismGoal(target, self.tolerance if tolerance is None else tolerance)
        logging.debug(f"{self.name} goal -> {target}")

    def halt(self):
        """Zero the output and drop the goal; repeated calls change nothing"""
        self.goal = None
        self.motor.set_voltage(0.0)

    @property
    def is_stopped(self) -> bool:
        return self.goal is None and self.motor.applied_voltage == 0.0

    def set_goal(self, target: float, tolerance: Optional[float] = None) -> Command:
        """Command that sets the goal and finishes once it is reached"""
        return FunctionalCommand(
            on_init=lambda: self.apply_goal(target, tolerance),
            is_finished=self.is_at_goal,
            name=f"{self.name}.set_goal({target})",
            requirements={self}
        )

    def stop(self) -> Command:
        return InstantCommand(self.halt, name=f"{self.name}.stop", requirements={self})

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class ProfiledMechanism(MechanismController):
    """
    Closed-loop position mechanism

    A trapezoid profile moves the setpoint toward the goal; the output is the
    feedforward for that setpoint plus PID on the remaining position error.
    """

    def __init__(self, name: str, motor: MotorOutput, pid: PIDController, feedforward,
                 constraints: ProfileConstraints, tolerance: float,
                 min_position: float = -float('inf'), max_position: float = float('inf'),
                 period: float = 0.02, registry: Optional[OutputRegistry] = None):
        super().__init__(name, motor, tolerance, registry)
        self.pid = pid
        self.feedforward = feedforward
        self.profile = TrapezoidProfile(constraints)
        self.min_position = min_position
        self.max_position = max_position
        self.period = period
        self.setpoint: Optional[ProfileState] = None

    def get_measurement(self) -> float:
        return self.motor.get_position()

    def apply_goal(self, target: float, tolerance: Optional[float] = None):
        clamped = float(np.clip(target, self.min_position, self.max_position))
        if clamped != target:
            logging.warning(f"{self.name} goal {target} clamped to {clamped}")

        if self.goal is None or self.setpoint is None:
            # Start the profile from where the mechanism actually is
            self.setpoint = ProfileState(self.get_measurement(), self.motor.get_velocity())
            self.pid.reset()

        super().apply_goal(clamped, tolerance)

    def halt(self):
        super().halt()
        self.setpoint = None
        self.pid.reset()

    def periodic(self):
        if self.goal is None:
            self.motor.set_voltage(0.0)
            return

        previous = self.setpoint
        self.setpoint = self.profile.calculate(
            self.period, previous, ProfileState(self.goal.target, 0.0)
        )
        acceleration = (self.setpoint.velocity - previous.velocity) / self.period

        feedforward = self.feedforward.calculate(
            self.setpoint.position, self.setpoint.velocity, acceleration
        )
        feedback = self.pid.update(self.setpoint.position, self.get_measurement(), self.period)
        self.motor.set_voltage(feedforward + feedback)


class Lift(ProfiledMechanism):
    """Vertical elevator; positions in meters"""

    def __init__(self, motor: MotorOutput, pid: PIDController, gains: FeedforwardGains,
                 constraints: ProfileConstraints, tolerance: float = 0.1,
                 min_height: float = 0.0, max_height: float = 4.5,
                 period: float = 0.02, registry: Optional[OutputRegistry] = None,
                 name: str = "lift"):
        super().__init__(name, motor, pid, ElevatorFeedforward(gains), constraints,
                         tolerance, min_height, max_height, period, registry)

    @property
    def height(self) -> float:
        return self.get_measurement()


class Arm(ProfiledMechanism):
    """Rotating pivot arm; angles in degrees from horizontal"""

    def __init__(self, motor: MotorOutput, pid: PIDController, gains: FeedforwardGains,
                 constraints: ProfileConstraints, tolerance: float = 2.0,
                 min_angle: float = -90.0, max_angle: float = 150.0,
                 period: float = 0.02, registry: Optional[OutputRegistry] = None,
                 name: str = "arm"):
        super().__init__(name, motor, pid, ArmFeedforward(gains), constraints,
                         tolerance, min_angle, max_angle, period, registry)

    @property
    def angle(self) -> float:
        return self.get_measurement()


class OpenLoopMechanism(MechanismController):
    """
    Duty-cycle mechanism without position feedback

    The measured value is the applied duty, so a goal is reached as soon as
    it is applied.
    """

    def __init__(self, name: str, motor: MotorOutput, nominal_voltage: float = 12.0,
                 tolerance: float = 1e-6, registry: Optional[OutputRegistry] = None):
        super().__init__(name, motor, tolerance, registry)
        self.nominal_voltage = nominal_voltage

    def get_measurement(self) -> float:
        return self.motor.applied_voltage / self.nominal_voltage

    def apply_goal(self, target: float, tolerance: Optional[float] = None):
        duty = float(np.clip(target, -1.0, 1.0))
        super().apply_goal(duty, tolerance)
        self.motor.set_voltage(duty * self.nominal_voltage)

    def periodic(self):
        duty = self.goal.target if self.goal is not None else 0.0
        self.motor.set_voltage(duty * self.nominal_voltage)

    def run(self, duty: float) -> Command:
        """Hold ``duty`` until the command is cancelled, then halt"""
        return FunctionalCommand(
            on_init=lambda: self.apply_goal(duty),
            on_end=lambda interrupted: self.halt(),
            name=f"{self.name}.run({duty})",
            requirements={self}
        )


class Intake(OpenLoopMechanism):
    """Intake roller"""

    def __init__(self, motor: MotorOutput, nominal_voltage: float = 12.0,
                 registry: Optional[OutputRegistry] = None, name: str = "intake"):
        super().__init__(name, motor, nominal_voltage, registry=registry)


class Gripper(OpenLoopMechanism):
    """Holding gripper wheels"""

    def __init__(self, motor: MotorOutput, nominal_voltage: float = 12.0,
                 registry: Optional[OutputRegistry] = None, name: str = "gripper"):
        super().__init__(name, motor, nominal_voltage, registry=registry)


class Climber(OpenLoopMechanism):
    """Climbing winch"""

    def __init__(self, motor: MotorOutput, nominal_voltage: float = 12.0,
                 registry: Optional[OutputRegistry] = None, name: str = "climber"):
        super().__init__(name, motor, nominal_voltage, registry=registry)
