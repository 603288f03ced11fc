"""
Pose Fusion Module
Routes accepted camera pose candidates into the drivetrain pose estimator
"""

import numpy as np
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from .geometry import Pose2d
from .field_layout import FieldLayout
from .camera_estimator import CameraEstimator, PoseCandidate, PoseStrategy
from ..telemetry import publish


class OdometryInput(ABC):
    """Measurement-fusion input of the drivetrain pose estimator"""

    @abstractmethod
    def add_vision_measurement(self, pose: Pose2d, timestamp: float, std_devs: np.ndarray):
        pass


class PoseFusionCoordinator:
    """
    Polls every camera estimator once per control cycle and forwards
    reliable candidates to odometry
    """

    def __init__(self, estimators: Sequence[CameraEstimator], odometry,
                 telemetry=None, field_layout: Optional[FieldLayout] = None,
                 max_ambiguity: float = 0.2, field_margin: float = 0.5,
                 max_pose_height: float = 0.75):
        """
        Initialize fusion coordinator

        Args:
            estimators: Camera estimators, polled in this order
            odometry: Object exposing add_vision_measurement(pose, timestamp, std_devs)
            telemetry: Optional dashboard sink
            field_layout: Field bounds for the on-field check (skipped if None)
            max_ambiguity: Highest accepted single-marker ambiguity
            field_margin: Allowed distance outside the field rectangle in meters
            max_pose_height: Highest accepted |z| of a robot pose in meters
        """
        self.estimators = list(estimators)
        self.odometry = odometry
        self.telemetry = telemetry
        self.field_layout = field_layout
        self.max_ambiguity = max_ambiguity
        self.field_margin = field_margin
        self.max_pose_height = max_pose_height

        self.stats: Dict[str, Dict[str, int]] = {
            estimator.name: {'accepted': 0, 'rejected': 0, 'failed': 0}
            for estimator in self.estimators
        }

    def update(self) -> List[PoseCandidate]:
        """
        Run one fusion cycle

        Returns:
            Candidates forwarded to odometry this cycle
        """
        forwarded = []

        for estimator in self.estimators:
            stats = self.stats.setdefault(estimator.name, {'accepted': 0, 'rejected': 0, 'failed': 0})
            try:
                candidate = estimator.observe()
                publish(self.telemetry, f"Vision/{estimator.name}/HasTargets", estimator.has_targets())

                if candidate is None:
                    continue

                reason = self.rejection_reason(candidate)
                if reason is not None:
                    stats['rejected'] += 1
                    logging.debug(f"Rejected pose from {estimator.name}: {reason}")
                    continue

                self.odometry.add_vision_measurement(
                    candidate.pose.to_pose2d(), candidate.timestamp, candidate.trust_std_devs
                )
            except Exception as e:
                stats['failed'] += 1
                logging.error(f"Vision measurement from {estimator.name} failed: {e}")
                continue

            stats['accepted'] += 1
            forwarded.append(candidate)
            self._publish_candidate(estimator.name, candidate)

        return forwarded

    def rejection_reason(self, candidate: PoseCandidate) -> Optional[str]:
        """Explain why a candidate is unreliable, None if it is usable"""
        if (candidate.strategy == PoseStrategy.LOWEST_AMBIGUITY and
                candidate.ambiguity > self.max_ambiguity):
            return f"ambiguity {candidate.ambiguity:.3f} above {self.max_ambiguity}"

        if abs(candidate.pose.z) > self.max_pose_height:
            return f"height {candidate.pose.z:.2f} m off the floor"

        if self.field_layout is not None and not self.field_layout.contains(
                candidate.pose.x, candidate.pose.y, self.field_margin):
            return f"({candidate.pose.x:.2f}, {candidate.pose.y:.2f}) outside the field"

        return None

    def _publish_candidate(self, name: str, candidate: PoseCandidate):
        pose = candidate.pose.to_pose2d()
        publish(self.telemetry, f"Vision/{name}/X", pose.x)
        publish(self.telemetry, f"Vision/{name}/Y", pose.y)
        publish(self.telemetry, f"Vision/{name}/Heading", float(np.degrees(pose.heading)))
        publish(self.telemetry, f"Vision/{name}/Strategy", candidate.strategy.value)
