"""
Field Layout Module
Fixed fiducial marker poses on the field, loaded from the AprilTag layout format
"""

import json
import numpy as np
import yaml
from typing import Dict, Optional, Any
from scipy.spatial.transform import Rotation

from .geometry import Transform3d


# 6.5 inch tags
DEFAULT_TAG_SIZE = 0.1651


class FieldLayout:
    """
    Field-relative poses of every fiducial marker

    A tag's x axis points out of its printed face. Corners are listed
    bottom-left, bottom-right, top-right, top-left as seen by a camera
    facing the tag.
    """

    def __init__(self, tags: Dict[int, Transform3d], length: float, width: float,
                 tag_size: float = DEFAULT_TAG_SIZE):
        self.tags = dict(tags)
        self.length = length
        self.width = width
        self.tag_size = tag_size

    def get_tag_pose(self, fiducial_id: int) -> Optional[Transform3d]:
        return self.tags.get(fiducial_id)

    def has_tag(self, fiducial_id: int) -> bool:
        return fiducial_id in self.tags

    def tag_corners(self, fiducial_id: int) -> Optional[np.ndarray]:
        """Field-frame (4, 3) corner positions of a tag, None for unknown IDs"""
        tag_pose = self.tags.get(fiducial_id)
        if tag_pose is None:
            return None

        half = self.tag_size / 2.0
        local_corners = np.array([
            [0.0, -half, -half],
            [0.0, half, -half],
            [0.0, half, half],
            [0.0, -half, half]
        ])
        return tag_pose.transform_points(local_corners)

    def contains(self, x: float, y: float, margin: float = 0.0) -> bool:
        """Check whether a point lies on the field, allowing a margin"""
        return (-margin <= x <= self.length + margin and
                -margin <= y <= self.width + margin)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FieldLayout':
        """
        Parse the WPILib AprilTag layout structure

        Args:
            data: Dictionary with 'tags' (ID, pose.translation, pose.rotation.quaternion)
                  and 'field' (length, width) entries

        Returns:
            FieldLayout instance
        """
        tags = {}
        for entry in data.get('tags', []):
            translation = entry['pose']['translation']
            quaternion = entry['pose']['rotation']['quaternion']
            rotation = Rotation.from_quat([
                quaternion['X'], quaternion['Y'], quaternion['Z'], quaternion['W']
            ])
            tags[int(entry['ID'])] = Transform3d(
                np.array([translation['x'], translation['y'], translation['z']], dtype=float),
                rotation
            )

        field = data.get('field', {})
        return cls(tags, float(field.get('length', 0.0)), float(field.get('width', 0.0)),
                   float(data.get('tag_size', DEFAULT_TAG_SIZE)))

    def to_dict(self) -> Dict[str, Any]:
        tags = []
        for fiducial_id, pose in sorted(self.tags.items()):
            x, y, z, w = pose.rotation.as_quat()
            tags.append({
                'ID': fiducial_id,
                'pose': {
                    'translation': {'x': pose.x, 'y': pose.y, 'z': pose.z},
                    'rotation': {'quaternion': {'W': float(w), 'X': float(x),
                                                'Y': float(y), 'Z': float(z)}}
                }
            })
        return {
            'tags': tags,
            'field': {'length': self.length, 'width': self.width},
            'tag_size': self.tag_size
        }

    @classmethod
    def load(cls, filepath: str) -> 'FieldLayout':
        """Load a layout from a .json, .yaml or .yml file"""
        if filepath.endswith('.yaml') or filepath.endswith('.yml'):
            with open(filepath, 'r') as f:
                data = yaml.safe_load(f)
        elif filepath.endswith('.json'):
            with open(filepath, 'r') as f:
                data = json.load(f)
        else:
            raise ValueError("Unsupported file format. Use .yaml, .yml, or .json")

        return cls.from_dict(data)

    def save(self, filepath: str):
        if filepath.endswith('.yaml') or filepath.endswith('.yml'):
            with open(filepath, 'w') as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False)
        elif filepath.endswith('.json'):
            with open(filepath, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
        else:
            raise ValueError("Unsupported file format. Use .yaml, .yml, or .json")
