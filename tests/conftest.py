"""
Pytest configuration and shared fixtures for robot core tests.
"""
import sys
from pathlib import Path
from typing import List

import pytest
import numpy as np


# ==============================================================================
# Path Setup
# ==============================================================================

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from robot_core.perception.geometry import Transform3d
from robot_core.perception.field_layout import FieldLayout
from robot_core.perception.camera_estimator import CameraIntrinsics
from robot_core.control.hardware import MotorOutput, OutputRegistry
from robot_core.control.pid_controller import PIDController
from robot_core.control.feedforward import FeedforwardGains, ProfileConstraints
from robot_core.control.mechanisms import Lift, Arm, Intake, Gripper, Climber


# ==============================================================================
# Hardware Doubles
# ==============================================================================

class FakeMotor(MotorOutput):
    """Motor whose position and velocity are set directly by the test"""

    def __init__(self, channels=(1,), position: float = 0.0, max_voltage: float = 12.0):
        super().__init__(channels, max_voltage)
        self.position = position
        self.velocity = 0.0
        self.writes: List[float] = []

    def _write(self, volts: float):
        self.writes.append(volts)

    def get_position(self) -> float:
        return self.position

    def get_velocity(self) -> float:
        return self.velocity


class RecordingOdometry:
    """Drivetrain estimator double that keeps every vision measurement"""

    def __init__(self):
        self.measurements = []

    def add_vision_measurement(self, pose, timestamp, std_devs):
        self.measurements.append((pose, timestamp, np.asarray(std_devs)))


class FailingOdometry:
    def add_vision_measurement(self, pose, timestamp, std_devs):
        raise RuntimeError("odometry rejected the measurement")


def record_calls(mechanism, events: list):
    """
    Wrap a mechanism's apply_goal and halt so every call lands in ``events``
    as ('goal', name, target) or ('halt', name).
    """
    apply_goal = mechanism.apply_goal
    halt = mechanism.halt

    def recording_apply_goal(target, tolerance=None):
        events.append(('goal', mechanism.name, target))
        apply_goal(target, tolerance)

    def recording_halt():
        events.append(('halt', mechanism.name))
        halt()

    mechanism.apply_goal = recording_apply_goal
    mechanism.halt = recording_halt
    return mechanism


# ==============================================================================
# Perception Fixtures
# ==============================================================================

FIELD_LENGTH = 16.54
FIELD_WIDTH = 8.05


@pytest.fixture
def field_layout() -> FieldLayout:
    """Two markers on a wall at x = 8 m, faces pointing back toward x = 0"""
    tags = {
        1: Transform3d.from_xyz_rpy(8.0, 2.0, 0.5, yaw=np.pi),
        2: Transform3d.from_xyz_rpy(8.0, 3.0, 0.5, yaw=np.pi),
        3: Transform3d.from_xyz_rpy(0.0, 4.0, 1.2),
    }
    return FieldLayout(tags, FIELD_LENGTH, FIELD_WIDTH)


@pytest.fixture
def intrinsics() -> CameraIntrinsics:
    return CameraIntrinsics.from_fov(1280, 960, 90.0)


@pytest.fixture
def robot_to_camera() -> Transform3d:
    return Transform3d.from_xyz_rpy(0.2, 0.0, 0.3)


@pytest.fixture
def robot_pose() -> Transform3d:
    return Transform3d.from_xyz_rpy(5.0, 2.4, 0.0, yaw=np.radians(5.0))


# ==============================================================================
# Mechanism Fixtures
# ==============================================================================

@pytest.fixture
def registry() -> OutputRegistry:
    return OutputRegistry()


@pytest.fixture
def lift(registry) -> Lift:
    return Lift(
        FakeMotor((53, 57)),
        PIDController(2.0, 0.0, 0.0),
        FeedforwardGains(kg=0.4, kv=0.4, ka=0.1),
        ProfileConstraints(2.0, 4.0),
        tolerance=0.1,
        registry=registry
    )


@pytest.fixture
def arm(registry) -> Arm:
    return Arm(
        FakeMotor((52,)),
        PIDController(0.3, 0.0, 0.0),
        FeedforwardGains(kg=1.315, kv=0.02, ka=0.002),
        ProfileConstraints(180.0, 360.0),
        tolerance=2.0,
        registry=registry
    )


@pytest.fixture
def intake(registry) -> Intake:
    return Intake(FakeMotor((56,)), registry=registry)


@pytest.fixture
def gripper(registry) -> Gripper:
    return Gripper(FakeMotor((14,)), registry=registry)


@pytest.fixture
def climber(registry) -> Climber:
    return Climber(FakeMotor((58,)), registry=registry)


@pytest.fixture
def mechanisms(lift, arm, intake, gripper, climber):
    return [lift, arm, intake, gripper, climber]
