"""
Robot Configuration
Tunable constants for vision, mechanisms and game set-points, loadable from YAML or JSON
"""

import json
import yaml
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, List, Optional


@dataclass
class CameraConfig:
    """Mounting and optics of one camera"""
    name: str
    # x, y, z in meters; roll, pitch, yaw in degrees
    robot_to_camera: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0, 0.0, 0.0])
    width: int = 4656
    height: int = 3496
    diagonal_fov_deg: float = 90.0


def _default_cameras() -> List[CameraConfig]:
    return [
        CameraConfig("mod0Camera", [-1.0, 1.0, 0.0, 0.0, 0.0, 135.0]),
        CameraConfig("mod1Camera", [1.0, 1.0, 0.0, 0.0, 0.0, 45.0]),
        CameraConfig("mod2Camera", [1.0, -1.0, 0.0, 0.0, 0.0, 315.0]),
        CameraConfig("mod3Camera", [-1.0, -1.0, 0.0, 0.0, 0.0, 225.0]),
    ]


@dataclass
class VisionConfig:
    cameras: List[CameraConfig] = field(default_factory=_default_cameras)
    field_layout: Optional[str] = None  # Path to an AprilTag layout file
    single_tag_std_devs: List[float] = field(default_factory=lambda: [4.0, 4.0, 8.0])
    multi_tag_std_devs: List[float] = field(default_factory=lambda: [0.5, 0.5, 1.0])
    duplicate_threshold: float = 1e-5
    max_ambiguity: float = 0.2
    field_margin: float = 0.5
    max_pose_height: float = 0.75
    mount_height: float = 0.1016  # 4 in
    mount_pitch_deg: float = 45.0


@dataclass
class LiftConfig:
    motor_id: int = 53
    follower_id: int = 57
    tolerance: float = 0.1
    min_height: float = 0.0
    max_height: float = 4.5
    max_velocity: float = 2.0
    max_acceleration: float = 4.0
    # PID
    kp: float = 2.0
    ki: float = 0.0
    kd: float = 0.01
    # Feedforward
    ks: float = 0.0
    kg: float = 0.4
    kv: float = 0.4
    ka: float = 0.1
    # Simulated plant
    sim_kv: float = 0.4
    sim_ka: float = 0.1
    sim_kg: float = 0.4


@dataclass
class ArmConfig:
    motor_id: int = 52
    tolerance: float = 2.0
    min_angle: float = -90.0
    max_angle: float = 150.0
    max_velocity: float = 180.0
    max_acceleration: float = 360.0
    kp: float = 0.3
    ki: float = 0.0
    kd: float = 0.001
    ks: float = 0.0
    kg: float = 1.315
    kv: float = 0.02
    ka: float = 0.002
    sim_kv: float = 0.02
    sim_ka: float = 0.002
    sim_kg: float = 1.315


@dataclass
class RollerConfig:
    motor_id: int = 56


@dataclass
class SetpointConfig:
    """Game set-points: lift heights in meters, arm angles in degrees, roller duties"""
    coral_intake_height: float = 1.0
    score_level_one: float = 1.0
    score_level_two: float = 2.0
    score_level_three: float = 2.5
    score_level_four: float = 3.0
    down: float = 0.1
    algae_processor_height: float = 0.5
    algae_barge_height: float = 4.0
    algae_high_height: float = 2.7
    algae_low_height: float = 2.2
    coral_score_angle: float = 30.0
    coral_intake_angle: float = -90.0
    algae_angle: float = 0.0
    barge_angle: float = 90.0
    stow_angle: float = 0.0
    climb_angle: float = 90.0
    intake_duty: float = 0.5
    gripper_grab_duty: float = 0.6
    gripper_hold_duty: float = 0.1
    gripper_release_duty: float = -0.5
    climber_duty: float = 1.0
    game_piece_threshold_mm: float = 50.0


@dataclass
class RobotConfig:
    period: float = 0.02
    nominal_voltage: float = 12.0
    vision: VisionConfig = field(default_factory=VisionConfig)
    lift: LiftConfig = field(default_factory=LiftConfig)
    arm: ArmConfig = field(default_factory=ArmConfig)
    intake: RollerConfig = field(default_factory=lambda: RollerConfig(56))
    gripper: RollerConfig = field(default_factory=lambda: RollerConfig(14))
    climber: RollerConfig = field(default_factory=lambda: RollerConfig(58))
    setpoints: SetpointConfig = field(default_factory=SetpointConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'RobotConfig':
        data = dict(data or {})
        vision = dict(data.pop('vision', None) or {})
        cameras = vision.pop('cameras', None)

        vision_config = _build(VisionConfig, vision)
        if cameras is not None:
            vision_config.cameras = [_build(CameraConfig, c) for c in cameras]

        nested = {
            'lift': LiftConfig,
            'arm': ArmConfig,
            'intake': RollerConfig,
            'gripper': RollerConfig,
            'climber': RollerConfig,
            'setpoints': SetpointConfig,
        }
        kwargs = {'vision': vision_config}
        for key, value in data.items():
            if key in nested:
                base = getattr(cls(), key)
                merged = asdict(base)
                merged.update(value or {})
                kwargs[key] = _build(nested[key], merged)
            else:
                kwargs[key] = value

        _check_keys(cls, kwargs)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _check_keys(cls, data: Dict[str, Any]):
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {sorted(unknown)}")


def _build(cls, data: Dict[str, Any]):
    _check_keys(cls, data)
    return cls(**data)


def load_config(filepath: str) -> RobotConfig:
    """Load configuration from a .yaml, .yml or .json file"""
    if filepath.endswith('.yaml') or filepath.endswith('.yml'):
        with open(filepath, 'r') as f:
            data = yaml.safe_load(f)
    elif filepath.endswith('.json'):
        with open(filepath, 'r') as f:
            data = json.load(f)
    else:
        raise ValueError("Unsupported file format. Use .yaml, .yml, or .json")

    return RobotConfig.from_dict(data)


def save_config(config: RobotConfig, filepath: str):
    """Save configuration to a .yaml, .yml or .json file"""
    data = config.to_dict()

    if filepath.endswith('.yaml') or filepath.endswith('.yml'):
        with open(filepath, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    elif filepath.endswith('.json'):
        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2)
    else:
        raise ValueError("Unsupported file format. Use .yaml, .yml, or .json")
