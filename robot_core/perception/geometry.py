"""
Geometry Module
Rigid-body transforms and planar poses shared by the vision pipeline
"""

import numpy as np
from typing import Sequence
from dataclasses import dataclass
from scipy.spatial.transform import Rotation


# Maps the robot/camera frame (x forward, y left, z up) onto the OpenCV
# camera frame (x right, y down, z forward).
NWU_TO_OPENCV = np.array([
    [0.0, -1.0, 0.0],
    [0.0, 0.0, -1.0],
    [1.0, 0.0, 0.0]
])


@dataclass(frozen=True)
class Pose2d:
    """Planar field pose handed to the drivetrain"""
    x: float
    y: float
    heading: float  # radians, counter-clockwise positive


@dataclass(frozen=True, eq=False)
class Transform3d:
    """
    Rigid transform (rotation followed by translation)

    Field poses are transforms from the field origin, so the same type
    serves as Pose3d.
    """
    translation: np.ndarray
    rotation: Rotation

    @classmethod
    def identity(cls) -> 'Transform3d':
        return cls(np.zeros(3), Rotation.identity())

    @classmethod
    def from_xyz_rpy(cls, x: float, y: float, z: float,
                     roll: float = 0.0, pitch: float = 0.0,
                     yaw: float = 0.0) -> 'Transform3d':
        """Build from a translation and intrinsic roll/pitch/yaw in radians"""
        rotation = Rotation.from_euler('ZYX', [yaw, pitch, roll])
        return cls(np.array([x, y, z], dtype=float), rotation)

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> 'Transform3d':
        """Build from a 4x4 homogeneous matrix"""
        matrix = np.asarray(matrix, dtype=float)
        return cls(matrix[:3, 3].copy(), Rotation.from_matrix(matrix[:3, :3]))

    @classmethod
    def from_rotation_matrix(cls, rotation_matrix: np.ndarray,
                             translation: Sequence[float] = (0.0, 0.0, 0.0)) -> 'Transform3d':
        return cls(np.asarray(translation, dtype=float),
                   Rotation.from_matrix(rotation_matrix))

    def as_matrix(self) -> np.ndarray:
        matrix = np.eye(4)
        matrix[:3, :3] = self.rotation.as_matrix()
        matrix[:3, 3] = self.translation
        return matrix

    def compose(self, other: 'Transform3d') -> 'Transform3d':
        """Apply ``other`` in this transform's frame (self * other)"""
        return Transform3d(
            self.translation + self.rotation.apply(other.translation),
            self.rotation * other.rotation
        )

    def __matmul__(self, other: 'Transform3d') -> 'Transform3d':
        return self.compose(other)

    def inverse(self) -> 'Transform3d':
        inverse_rotation = self.rotation.inv()
        return Transform3d(-inverse_rotation.apply(self.translation), inverse_rotation)

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Map (N, 3) points from this transform's child frame to its parent frame"""
        return self.rotation.apply(np.asarray(points, dtype=float)) + self.translation

    @property
    def x(self) -> float:
        return float(self.translation[0])

    @property
    def y(self) -> float:
        return float(self.translation[1])

    @property
    def z(self) -> float:
        return float(self.translation[2])

    @property
    def yaw(self) -> float:
        return float(self.rotation.as_euler('ZYX')[0])

    def to_pose2d(self) -> Pose2d:
        return Pose2d(self.x, self.y, self.yaw)

    def is_close(self, other: 'Transform3d', translation_tol: float = 1e-6,
                 angle_tol: float = 1e-6) -> bool:
        """Compare translation and rotation within tolerances"""
        if np.linalg.norm(self.translation - other.translation) > translation_tol:
            return False
        return (self.rotation.inv() * other.rotation).magnitude() <= angle_tol

    def __repr__(self) -> str:
        roll_pitch_yaw = self.rotation.as_euler('ZYX')[::-1]
        return (f"Transform3d(x={self.x:.3f}, y={self.y:.3f}, z={self.z:.3f}, "
                f"rpy={np.round(roll_pitch_yaw, 3).tolist()})")


Pose3d = Transform3d
