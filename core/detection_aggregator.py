"""Detection aggregation: merge duplicate technology detections from many detectors.

Two detections are duplicates when they share ``(name, category)``. The merge
keeps the highest-confidence entry, fills a missing version or usage from the
others, and sorts the output deterministically. Running it on its own output
returns the same list.
"""
import logging
from typing import Dict, List, Tuple

from models.detection import Detection

logger = logging.getLogger(__name__)


class DetectionAggregator:
    """Merges detections reported by multiple detectors."""

    @staticmethod
    def aggregate(detections: List[Detection]) -> List[Detection]:
        """
        Merge detections that share (name, category).

        Args:
            detections: Detections from every detector, in any order

        Returns:
            One detection per (name, category), sorted by confidence (highest
            first) then name and category
        """
        if not detections:
            return []

        grouped: Dict[Tuple[str, str], List[Detection]] = {}
        for detection in detections:
            key = (detection.name, detection.category.value)
            grouped.setdefault(key, []).append(detection)

        aggregated = [DetectionAggregator._merge_detections(group) for group in grouped.values()]
        aggregated.sort(key=lambda d: (-d.confidence, d.name, d.category.value))
        return aggregated

    @staticmethod
    def _merge_detections(detections: List[Detection]) -> Detection:
        """Keep the strongest detection, borrowing version/usage/description it lacks."""
        if len(detections) == 1:
            return detections[0]

        # Deterministic regardless of input order: confidence, then evidence text
        ranked = sorted(detections, key=lambda d: (-d.confidence, str(d.evidence), d.version or ""))
        primary = ranked[0]
        version = primary.version or next((d.version for d in ranked if d.version), None)
        usage = primary.usage or next((d.usage for d in ranked if d.usage), None)
        description = primary.description or next((d.description for d in ranked if d.description), "")

        logger.debug(f"Merged {len(detections)} detections of {primary.name} ({primary.category.value})")
        return Detection(
            name=primary.name,
            category=primary.category,
            confidence=min(1.0, max(0.0, primary.confidence)),
            evidence=primary.evidence,
            version=version,
            description=description,
            usage=usage,
        )
