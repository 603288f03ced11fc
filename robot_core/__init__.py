"""
Robot Core
Vision pose fusion, mechanism control and action orchestration for a competition robot
"""

from .commands import Command, CommandScheduler
from .config import RobotConfig, load_config, save_config
from .telemetry import TelemetrySink, DictTelemetrySink
from .perception.camera_estimator import CameraEstimator
from .perception.pose_fusion import PoseFusionCoordinator
from .control.mechanisms import Lift, Arm, Intake, Gripper, Climber
from .orchestration.orchestrator import ActionOrchestrator
from .orchestration.superstructure import Superstructure
from .robot import RobotCore

__version__ = "1.0.0"
__author__ = "Robotics Team"

__all__ = [
    'Command',
    'CommandScheduler',
    'RobotConfig',
    'load_config',
    'save_config',
    'TelemetrySink',
    'DictTelemetrySink',
    'CameraEstimator',
    'PoseFusionCoordinator',
    'Lift',
    'Arm',
    'Intake',
    'Gripper',
    'Climber',
    'ActionOrchestrator',
    'Superstructure',
    'RobotCore'
]
