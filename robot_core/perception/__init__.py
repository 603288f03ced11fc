"""
Perception Module
Fiducial-marker pose estimation and vision fusion into odometry
"""

from .geometry import Pose2d, Pose3d, Transform3d, NWU_TO_OPENCV
from .field_layout import FieldLayout
from .camera_estimator import (
    CameraEstimator, CameraIntrinsics, DetectionChannel, Detection,
    MarkerObservation, PoseCandidate, PoseStrategy
)
from .pose_fusion import PoseFusionCoordinator, OdometryInput
from .simulation import SimulatedCamera

__all__ = [
    'Pose2d',
    'Pose3d',
    'Transform3d',
    'NWU_TO_OPENCV',
    'FieldLayout',
    'CameraEstimator',
    'CameraIntrinsics',
    'DetectionChannel',
    'Detection',
    'MarkerObservation',
    'PoseCandidate',
    'PoseStrategy',
    'PoseFusionCoordinator',
    'OdometryInput',
    'SimulatedCamera'
]
