"""Matching of segmented objects between consecutive frames.

This module provides distance and overlap matrices and the greedy one-to-one
assignment used to carry object types from the previous frame to the current one.
"""

from __future__ import annotations

import numpy as np
from scipy.spatial.distance import cdist

from .base import DetectedObject


def distance_matrix(previous: list[DetectedObject], current: list[DetectedObject]) -> np.ndarray:
    """Compute 3D Euclidean distances between object positions.

    Args:
        previous: Objects of the previous frame.
        current: Objects of the current frame.

    Returns:
        Distance matrix with shape (len(previous), len(current)).
    """
    if not previous or not current:
        return np.zeros((len(previous), len(current)), dtype=np.float64)

    a = np.asarray([obj.position for obj in previous], dtype=np.float64)
    b = np.asarray([obj.position for obj in current], dtype=np.float64)
    return cdist(a, b)


def overlap_matrix(previous: list[DetectedObject], current: list[DetectedObject], metric: str = "iou") -> np.ndarray:
    """Compute region overlap between previous and current objects.

    Args:
        previous: Objects of the previous frame.
        current: Objects of the current frame.
        metric: 'iou' for intersection over union of the frame-space regions, or
            'ratio' for previous pixel count over current pixel count.

    Returns:
        Overlap matrix with shape (len(previous), len(current)). Pairs whose regions
        do not intersect in the frame, or involve an empty current region, get 0 so
        they never pass the matching gate.
    """
    overlaps = np.zeros((len(previous), len(current)), dtype=np.float64)

    for j, new in enumerate(current):
        new_count = new.pixel_count
        if new_count == 0:
            continue

        for i, old in enumerate(previous):
            inter = old.intersection(new)
            if inter == 0:
                continue

            old_count = old.pixel_count
            if metric == "iou":
                overlaps[i, j] = inter / (old_count + new_count - inter)
            else:
                overlaps[i, j] = old_count / new_count

    return overlaps


def greedy_assignment(dists: np.ndarray, overlaps: np.ndarray, thresh: float = 0.5) -> list[tuple[int, int]]:
    """Greedily pair rows and columns by ascending distance.

    Pairs whose overlap does not exceed ``thresh`` are never considered. The
    closest remaining pair is accepted, then every other pair sharing its row or
    column is discarded, until no candidate is left.

    Args:
        dists: Distance matrix with shape (N, M).
        overlaps: Overlap matrix with shape (N, M).
        thresh: Overlap gate.

    Returns:
        List of (row, column) matches; each row and column appears at most once.
    """
    rows, cols = np.nonzero(np.asarray(overlaps) > thresh)
    if rows.size == 0:
        return []

    order = np.argsort(dists[rows, cols], kind="stable")

    matches = []
    used_rows, used_cols = set(), set()
    for k in order:
        i, j = int(rows[k]), int(cols[k])
        if i in used_rows or j in used_cols:
            continue
        matches.append((i, j))
        used_rows.add(i)
        used_cols.add(j)

    return matches


class ObjectMatcher:
    """Associates the current frame's objects with the previous frame's.

    Attributes:
        overlap_thresh: Minimum overlap for a pair to be a candidate.
        metric: Overlap metric ('iou' or 'ratio').
    """

    def __init__(self, overlap_thresh: float = 0.5, metric: str = "iou"):
        self.overlap_thresh = overlap_thresh
        self.metric = metric

    def match(self, previous: list[DetectedObject], current: list[DetectedObject]) -> list[tuple[int, int]]:
        """Match objects and copy each matched previous type onto its current object.

        Args:
            previous: Objects of the previous frame.
            current: Objects of the current frame (types updated in place).

        Returns:
            List of (previous index, current index) matches.
        """
        if not previous or not current:
            return []

        matches = greedy_assignment(
            distance_matrix(previous, current),
            overlap_matrix(previous, current, self.metric),
            self.overlap_thresh,
        )
        for i, j in matches:
            current[j].type = previous[i].type
        return matches
