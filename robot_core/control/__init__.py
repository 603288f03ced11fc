"""
Control Module
Mechanism controllers, feedback and feedforward laws, and plant models
"""

from .pid_controller import PIDController, PIDGains, PIDSample
from .feedforward import (
    FeedforwardGains, ElevatorFeedforward, ArmFeedforward,
    TrapezoidProfile, ProfileConstraints, ProfileState
)
from .hardware import MotorOutput, SimulatedMotor, OutputRegistry, OutputConflictError, GamePieceSensor
from .mechanisms import (
    MechanismController, ProfiledMechanism, OpenLoopMechanism,
    Lift, Arm, Intake, Gripper, Climber
)
from .simulation import LinearMechanismSim, ElevatorSim, ArmSim

__all__ = [
    'PIDController',
    'PIDGains',
    'PIDSample',
    'FeedforwardGains',
    'ElevatorFeedforward',
    'ArmFeedforward',
    'TrapezoidProfile',
    'ProfileConstraints',
    'ProfileState',
    'MotorOutput',
    'SimulatedMotor',
    'OutputRegistry',
    'OutputConflictError',
    'GamePieceSensor',
    'MechanismController',
    'ProfiledMechanism',
    'OpenLoopMechanism',
    'Lift',
    'Arm',
    'Intake',
    'Gripper',
    'Climber',
    'LinearMechanismSim',
    'ElevatorSim',
    'ArmSim'
]
