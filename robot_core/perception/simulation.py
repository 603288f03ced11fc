"""
Simulated camera producing fiducial detections from a known robot pose
"""

import cv2
import numpy as np
from typing import Optional

from .geometry import Transform3d, NWU_TO_OPENCV
from .field_layout import FieldLayout
from .camera_estimator import CameraIntrinsics, Detection, MarkerObservation, DetectionChannel


class SimulatedCamera:
    """
    Renders the markers a camera would see into Detection batches
    """

    def __init__(self, field_layout: FieldLayout, robot_to_camera: Transform3d,
                 intrinsics: CameraIntrinsics, channel: Optional[DetectionChannel] = None,
                 max_range: float = 8.0, ambiguity: float = 0.05):
        self.field_layout = field_layout
        self.robot_to_camera = robot_to_camera
        self.intrinsics = intrinsics
        self.channel = channel
        self.max_range = max_range
        self.ambiguity = ambiguity

    def capture(self, robot_pose: Transform3d, timestamp: float) -> Detection:
        """
        Build the detection for a robot standing at ``robot_pose``

        Args:
            robot_pose: Ground-truth field pose of the robot
            timestamp: Capture timestamp to stamp on the batch

        Returns:
            Detection with every marker in view
        """
        field_to_camera = robot_pose @ self.robot_to_camera
        camera_to_field = field_to_camera.inverse()

        cv_from_field = Transform3d.from_rotation_matrix(NWU_TO_OPENCV) @ camera_to_field
        rvec, _ = cv2.Rodrigues(cv_from_field.rotation.as_matrix())
        tvec = cv_from_field.translation.reshape(3, 1)

        markers = []
        for fiducial_id, field_to_tag in sorted(self.field_layout.tags.items()):
            camera_to_tag = camera_to_field @ field_to_tag
            x, y, z = camera_to_tag.translation
            distance = float(np.linalg.norm(camera_to_tag.translation))
            if x <= 0.0 or distance > self.max_range:
                continue

            # The printed face must point back toward the camera
            tag_normal = field_to_tag.rotation.apply([1.0, 0.0, 0.0])
            to_camera = field_to_camera.translation - field_to_tag.translation
            if np.dot(tag_normal, to_camera) <= 0.0:
                continue

            corners, _ = cv2.projectPoints(
                self.field_layout.tag_corners(fiducial_id), rvec, tvec,
                self.intrinsics.camera_matrix, self.intrinsics.distortion_coeffs
            )
            corners = corners.reshape(4, 2)
            in_frame = np.all((corners[:, 0] >= 0) & (corners[:, 0] < self.intrinsics.width) &
                              (corners[:, 1] >= 0) & (corners[:, 1] < self.intrinsics.height))
            if not in_frame:
                continue

            markers.append(MarkerObservation(
                fiducial_id=fiducial_id,
                yaw=float(-np.degrees(np.arctan2(y, x))),
                pitch=float(np.degrees(np.arctan2(z, np.hypot(x, y)))),
                ambiguity=self.ambiguity,
                camera_to_target=camera_to_tag,
                corners=corners,
                area=float(cv2.contourArea(corners.astype(np.float32)))
            ))

        return Detection(timestamp=timestamp, markers=markers)

    def update(self, robot_pose: Transform3d, timestamp: float) -> Detection:
        """Capture and publish into the attached channel"""
        detection = self.capture(robot_pose, timestamp)
        if self.channel is not None:
            self.channel.publish(detection)
        return detection
