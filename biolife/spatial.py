"""
Spatial utility functions for 2D geometry.

Helper functions for distance calculations, direction normalization,
and boundary handling in the 2D world plane.
"""

import numpy as np
from typing import Tuple

from .constants import MIN_DISTANCE_EPSILON


def distance_2d(pos_a: np.ndarray, pos_b: np.ndarray) -> float:
    """
    Calculate Euclidean distance between two 2D points.

    Args:
        pos_a: Position [x, y]
        pos_b: Position [x, y]

    Returns:
        Distance in world units
    """
    diff = pos_a - pos_b
    return float(np.sqrt(np.dot(diff, diff)))


def separation(pos_a: np.ndarray, pos_b: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Unit direction from A to B and the (epsilon-guarded) distance.

    Coincident points get distance MIN_DISTANCE_EPSILON and the +x axis as
    direction, so callers never divide by zero.

    Args:
        pos_a: Position [x, y]
        pos_b: Position [x, y]

    Returns:
        Tuple of (unit vector A->B, distance)
    """
    diff = pos_b - pos_a
    dist = float(np.sqrt(np.dot(diff, diff)))

    if dist < MIN_DISTANCE_EPSILON:
        if dist == 0.0:
            return np.array([1.0, 0.0], dtype=np.float64), MIN_DISTANCE_EPSILON
        return diff / dist, MIN_DISTANCE_EPSILON

    return diff / dist, dist


def perpendicular(unit: np.ndarray) -> np.ndarray:
    """Rotate a 2D vector by +90 degrees"""
    return np.array([-unit[1], unit[0]], dtype=np.float64)


def mass_weighted_center(positions: np.ndarray, masses: np.ndarray) -> np.ndarray:
    """
    Mass-weighted centroid of points.

    Args:
        positions: (N, 2) array
        masses: (N,) array

    Returns:
        Centroid [x, y]; origin for empty input
    """
    total = float(np.sum(masses))
    if len(positions) == 0 or total <= 0.0:
        return np.zeros(2, dtype=np.float64)
    return (positions * masses[:, np.newaxis]).sum(axis=0) / total
