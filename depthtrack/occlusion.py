"""Occlusion reasoning.

Objects segmented around the mean-shift window are labeled as target,
occluder or background, either by matching them to the previous frame's
objects or from their depth extent relative to the predicted target depth.
The labeled objects then decide whether the mean-shift depth can be trusted.
"""

from __future__ import annotations

from .base import DetectedObject, ObjectType, OcclusionDecision
from .matching import ObjectMatcher
from .utils import LOGGER


def classify_object(obj: DetectedObject, pz: float, window_z: float, z_range: float) -> ObjectType:
    """Classify a single object from its depth statistics.

    Args:
        obj: Object to classify.
        pz: Depth of the predicted target position.
        window_z: Target depth committed by the previous frame.
        z_range: Target depth range.

    Returns:
        OCCLUDER if the object lies entirely in front of both the predicted and the
        last known target depth, TARGET if the predicted depth falls inside or near
        the object's depth extent, BACKGROUND otherwise.
    """
    if obj.depth_max < pz and obj.depth_max < window_z:
        return ObjectType.OCCLUDER
    if obj.depth_min < pz < obj.depth_max:
        return ObjectType.TARGET
    if abs(pz - obj.depth_median) < z_range:
        return ObjectType.TARGET
    return ObjectType.BACKGROUND


def classify_objects(objects: list[DetectedObject], pz: float, window_z: float, z_range: float) -> None:
    """Classify every object whose type is still UNKNOWN, in place."""
    for obj in objects:
        if obj.type is ObjectType.UNKNOWN:
            obj.type = classify_object(obj, pz, window_z, z_range)


def decide_occlusion(
    objects: list[DetectedObject],
    z: float,
    z_range: float,
    recovery_fraction: float = 0.25,
) -> OcclusionDecision:
    """Decide whether the target at depth ``z`` is occluded.

    Args:
        objects: Classified objects of the current frame.
        z: Depth found by mean-shift.
        z_range: Target depth range.
        recovery_fraction: Fraction of ``z_range`` placed behind an occluder.

    Returns:
        OcclusionDecision. The target is occluded when an occluder's depth extent
        contains ``z`` or when no target object is near ``z``; otherwise the depth
        is corrected to the median of the closest qualifying target object.
    """
    for i, obj in enumerate(objects):
        if obj.type is ObjectType.OCCLUDER and obj.contains_depth(z):
            return OcclusionDecision(
                occluded=True,
                recovery_depth=obj.depth_max + z_range * recovery_fraction,
                object_index=i,
            )

    closest = None
    closest_dist = 0.0
    for i, obj in enumerate(objects):
        if obj.type is not ObjectType.TARGET:
            continue
        d = abs(z - obj.depth_median)
        if obj.contains_depth(z) or d < z_range:
            if closest is None or d < closest_dist:
                closest, closest_dist = i, d

    if closest is None:
        return OcclusionDecision(occluded=True)
    return OcclusionDecision(occluded=False, depth=objects[closest].depth_median, object_index=closest)


class OcclusionResolver:
    """Holds the previous frame's objects and resolves occlusion frame by frame.

    Attributes:
        matcher: Matcher carrying types over from the previous frame.
        recovery_fraction: Fraction of the depth range placed behind an occluder.
        objects: Objects published by the last resolved frame.
    """

    def __init__(self, matcher: ObjectMatcher | None = None, recovery_fraction: float = 0.25):
        self.matcher = matcher or ObjectMatcher()
        self.recovery_fraction = recovery_fraction
        self.objects: tuple[DetectedObject, ...] = ()

    def reset(self) -> None:
        """Forget the previous frame's objects."""
        self.objects = ()

    def resolve(
        self,
        new_objects: list[DetectedObject],
        pz: float,
        window_z: float,
        z: float,
        z_range: float,
    ) -> OcclusionDecision:
        """Label ``new_objects`` and decide occlusion for the mean-shift depth ``z``.

        The new objects replace the stored ones whatever the outcome.

        Args:
            new_objects: Freshly segmented objects of the current frame.
            pz: Depth of the predicted target position.
            window_z: Target depth committed by the previous frame.
            z: Depth found by mean-shift.
            z_range: Target depth range.

        Returns:
            OcclusionDecision for the current frame.
        """
        matches = self.matcher.match(list(self.objects), new_objects)
        classify_objects(new_objects, pz, window_z, z_range)

        decision = decide_occlusion(new_objects, z, z_range, self.recovery_fraction)
        self.objects = tuple(new_objects)

        LOGGER.debug(
            f"occlusion: {len(new_objects)} objects, {len(matches)} matched, "
            f"types={[str(obj.type) for obj in new_objects]}, occluded={decision.occluded}"
        )
        return decision
