"""
Camera Estimator Module
Turns one camera's fiducial detections into robot pose candidates
"""

import cv2
import numpy as np
import threading
import logging
from typing import Dict, List, Tuple, Optional, Sequence
from dataclasses import dataclass, field
from enum import Enum

from .geometry import Transform3d, NWU_TO_OPENCV
from .field_layout import FieldLayout


DUPLICATE_FRAME_THRESHOLD = 1e-5  # seconds

SINGLE_TAG_STD_DEVS = (4.0, 4.0, 8.0)
MULTI_TAG_STD_DEVS = (0.5, 0.5, 1.0)


class PoseStrategy(Enum):
    """Pose solving strategies"""
    MULTI_TAG_PNP = "multi_tag_pnp"
    LOWEST_AMBIGUITY = "lowest_ambiguity"


@dataclass
class MarkerObservation:
    """One fiducial marker seen in a frame"""
    fiducial_id: int
    yaw: float  # Bearing in degrees, positive right
    pitch: float  # Elevation in degrees, positive up
    ambiguity: float  # Reprojection error ratio of best to alternate solution
    camera_to_target: Transform3d
    corners: Optional[np.ndarray] = None  # (4, 2) pixel coordinates
    area: float = 0.0


@dataclass
class Detection:
    """All markers a camera recognised in one frame"""
    timestamp: float  # Hardware capture time, monotonic seconds
    markers: List[MarkerObservation] = field(default_factory=list)


@dataclass
class PoseCandidate:
    """Robot pose estimated from a single detection"""
    pose: Transform3d
    timestamp: float
    strategy: PoseStrategy
    trust_std_devs: np.ndarray  # x (m), y (m), heading (rad)
    ambiguity: float = 0.0
    marker_ids: Tuple[int, ...] = ()
    camera_name: str = ""


@dataclass
class CameraIntrinsics:
    """Pinhole camera model"""
    camera_matrix: np.ndarray
    distortion_coeffs: np.ndarray
    width: int
    height: int

    @classmethod
    def from_fov(cls, width: int, height: int, diagonal_fov_deg: float) -> 'CameraIntrinsics':
        """Ideal, distortion-free intrinsics from a diagonal field of view"""
        diagonal = np.hypot(width, height)
        focal = (diagonal / 2.0) / np.tan(np.radians(diagonal_fov_deg) / 2.0)
        camera_matrix = np.array([
            [focal, 0.0, width / 2.0],
            [0.0, focal, height / 2.0],
            [0.0, 0.0, 1.0]
        ])
        return cls(camera_matrix, np.zeros(5), width, height)


class DetectionChannel:
    """
    Hand-off point between a camera pipeline thread and the control loop
    """

    def __init__(self, max_pending: int = 16):
        self._pending: List[Detection] = []
        self._lock = threading.Lock()
        self.max_pending = max_pending

    def publish(self, detection: Detection):
        """Called by the camera pipeline for every processed frame"""
        with self._lock:
            self._pending.append(detection)
            if len(self._pending) > self.max_pending:
                self._pending.pop(0)

    def poll(self) -> List[Detection]:
        """Return and clear every batch published since the last poll"""
        with self._lock:
            pending = self._pending
            self._pending = []
        return pending


class CameraEstimator:
    """
    Pose estimator for one physically mounted camera
    """

    def __init__(self, name: str, source: DetectionChannel, field_layout: FieldLayout,
                 robot_to_camera: Transform3d,
                 intrinsics: Optional[CameraIntrinsics] = None,
                 single_tag_std_devs: Sequence[float] = SINGLE_TAG_STD_DEVS,
                 multi_tag_std_devs: Sequence[float] = MULTI_TAG_STD_DEVS,
                 duplicate_threshold: float = DUPLICATE_FRAME_THRESHOLD,
                 mount_height: float = 0.1016,
                 mount_pitch: float = np.radians(45.0)):
        """
        Initialize camera estimator

        Args:
            name: Camera name, used for logging and telemetry
            source: Channel the camera pipeline publishes detections into
            field_layout: Field-relative marker poses
            robot_to_camera: Camera mounting transform on the robot
            intrinsics: Camera model, required for the multi-marker solve
            single_tag_std_devs: Trust std devs for single-marker solves
            multi_tag_std_devs: Trust std devs for multi-marker solves
            duplicate_threshold: Minimum timestamp advance for a new candidate
            mount_height: Lens height above the floor in meters
            mount_pitch: Camera pitch in radians, positive up
        """
        self.name = name
        self.source = source
        self.field_layout = field_layout
        self.robot_to_camera = robot_to_camera
        self.intrinsics = intrinsics
        self.single_tag_std_devs = np.asarray(single_tag_std_devs, dtype=float)
        self.multi_tag_std_devs = np.asarray(multi_tag_std_devs, dtype=float)
        self.duplicate_threshold = duplicate_threshold
        self.mount_height = mount_height
        self.mount_pitch = mount_pitch

        if np.any(self.multi_tag_std_devs >= self.single_tag_std_devs):
            raise ValueError("Multi-tag std devs must be smaller than single-tag std devs")

        self._camera_to_robot = robot_to_camera.inverse()
        self._latest: Optional[Detection] = None
        self._last_timestamp: Optional[float] = None

    @property
    def latest_detection(self) -> Optional[Detection]:
        return self._latest

    def observe(self) -> Optional[PoseCandidate]:
        """
        Produce a pose candidate from the newest unread detection

        Returns:
            PoseCandidate, or None when nothing new and usable was seen
        """
        unread = self.source.poll()
        if not unread:
            return None

        detection = unread[-1]
        self._latest = detection

        if (self._last_timestamp is not None and
                detection.timestamp - self._last_timestamp <= self.duplicate_threshold):
            return None

        solution = self._solve(detection)
        if solution is None:
            return None

        pose, strategy, ambiguity, marker_ids = solution
        if strategy == PoseStrategy.MULTI_TAG_PNP:
            std_devs = self.multi_tag_std_devs.copy()
        else:
            std_devs = self.single_tag_std_devs.copy()

        self._last_timestamp = detection.timestamp
        return PoseCandidate(
            pose=pose,
            timestamp=detection.timestamp,
            strategy=strategy,
            trust_std_devs=std_devs,
            ambiguity=ambiguity,
            marker_ids=marker_ids,
            camera_name=self.name
        )

    def _solve(self, detection: Detection):
        known = [m for m in detection.markers if self.field_layout.has_tag(m.fiducial_id)]
        if not known:
            return None

        distinct_ids = sorted({m.fiducial_id for m in known})
        if len(distinct_ids) >= 2:
            pose = self._solve_multi_tag(known)
            if pose is not None:
                return pose, PoseStrategy.MULTI_TAG_PNP, 0.0, tuple(distinct_ids)
            logging.debug(f"{self.name}: multi-tag solve unavailable, falling back to lowest ambiguity")

        return self._solve_lowest_ambiguity(known)

    def _solve_multi_tag(self, markers: List[MarkerObservation]) -> Optional[Transform3d]:
        """Joint PnP over the corners of every visible marker"""
        if self.intrinsics is None:
            return None

        # One observation per marker, the least ambiguous
        by_id: Dict[int, MarkerObservation] = {}
        for marker in markers:
            if marker.corners is None:
                continue
            current = by_id.get(marker.fiducial_id)
            if current is None or marker.ambiguity < current.ambiguity:
                by_id[marker.fiducial_id] = marker

        if len(by_id) < 2:
            return None

        object_points = []
        image_points = []
        for fiducial_id, marker in sorted(by_id.items()):
            object_points.append(self.field_layout.tag_corners(fiducial_id))
            image_points.append(np.asarray(marker.corners, dtype=float).reshape(4, 2))

        object_points = np.vstack(object_points).astype(np.float64)
        image_points = np.vstack(image_points).astype(np.float64)

        try:
            success, rvec, tvec = cv2.solvePnP(
                object_points, image_points,
                self.intrinsics.camera_matrix, self.intrinsics.distortion_coeffs,
                flags=cv2.SOLVEPNP_SQPNP
            )
        except cv2.error as e:
            logging.warning(f"{self.name}: multi-tag PnP failed: {e}")
            return None

        if not success:
            return None

        # solvePnP yields the field -> OpenCV camera transform
        rotation_matrix, _ = cv2.Rodrigues(rvec)
        field_to_cv_camera = Transform3d.from_rotation_matrix(
            rotation_matrix, tvec.reshape(3)
        ).inverse()
        field_to_camera = field_to_cv_camera @ Transform3d.from_rotation_matrix(NWU_TO_OPENCV)
        return field_to_camera @ self._camera_to_robot

    def _solve_lowest_ambiguity(self, markers: List[MarkerObservation]):
        best = min(markers, key=lambda m: m.ambiguity)
        field_to_tag = self.field_layout.get_tag_pose(best.fiducial_id)
        field_to_camera = field_to_tag @ best.camera_to_target.inverse()
        pose = field_to_camera @ self._camera_to_robot
        return pose, PoseStrategy.LOWEST_AMBIGUITY, best.ambiguity, (best.fiducial_id,)

    def _best_known_marker(self) -> Optional[MarkerObservation]:
        """Least ambiguous marker in the latest frame that the field layout knows"""
        if self._latest is None:
            return None
        known = [m for m in self._latest.markers if self.field_layout.has_tag(m.fiducial_id)]
        if not known:
            return None
        return min(known, key=lambda m: m.ambiguity)

    def has_targets(self) -> bool:
        return self._best_known_marker() is not None

    def target_height(self) -> float:
        """Field height of the best known marker, 0.0 when none is visible"""
        best = self._best_known_marker()
        if best is None:
            return 0.0
        return self.field_layout.get_tag_pose(best.fiducial_id).z

    def target_distance(self) -> float:
        """Ground distance to the best known marker, 0.0 when none is visible"""
        best = self._best_known_marker()
        if best is None:
            return 0.0

        target_pitch = np.radians(best.pitch)
        angle = self.mount_pitch + target_pitch
        if abs(np.tan(angle)) < 1e-9:
            return 0.0
        return float((self.target_height() - self.mount_height) / np.tan(angle))
