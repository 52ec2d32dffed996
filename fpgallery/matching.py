"""Matching module - 1:N identification against the gallery

This module contains:
- clamp_score: bring a device score into the 0-199 scale
- MatchEngine: sequential pairwise comparison + running-max reduction

The comparisons themselves are delegated to the device service
(CaptureGateway.compare); nothing here looks inside a template.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from fpgallery.config import ACCEPTANCE_THRESHOLD, MAX_MATCH_SCORE
from fpgallery.errors import ComparisonRejected, EmptyGalleryError
from fpgallery.models import Identity, MatchOutcome


logger = logging.getLogger(__name__)


def clamp_score(score: int) -> int:
    """Clamp a device score into [0, MAX_MATCH_SCORE]."""
    return max(0, min(MAX_MATCH_SCORE, int(score)))


def is_accepted(score: int) -> bool:
    """Acceptance rule: strictly above the fixed threshold."""
    return score > ACCEPTANCE_THRESHOLD


class MatchEngine:
    """1:N identification using the device comparison endpoint.

    Comparisons are issued one at a time, in gallery order, so the device
    service never sees overlapping requests. The engine only reads the gallery
    and never mutates it.
    """

    def __init__(self, comparator) -> None:
        """Initialize engine.

        Args:
            comparator: Object with compare(probe_template, gallery_template) -> int,
                normally a CaptureGateway
        """
        self.comparator = comparator

    def identify(self, probe_template: str, gallery: Sequence[Identity]) -> MatchOutcome:
        """Find the best-scoring identity for a probe.

        Algorithm:
        1. Compare the probe with every record, sequentially, in gallery order
        2. A device rejection (non-zero ErrorCode) scores that record 0 and the scan continues
        3. A transport failure aborts the scan (DeviceTransportError propagates)
        4. Strict running max: a later equal score never replaces the recorded best
        5. accepted = best score > ACCEPTANCE_THRESHOLD

        Args:
            probe_template: Freshly captured template (base64)
            gallery: Enrolled identities (must be non-empty)

        Returns:
            MatchOutcome with score in [0, 199]

        Raises:
            EmptyGalleryError: If gallery is empty
            DeviceTransportError: If any comparison request fails on the wire
        """
        if not gallery:
            raise EmptyGalleryError()

        best_identity: Optional[Identity] = None
        best_score = 0

        for identity in gallery:
            try:
                score = clamp_score(self.comparator.compare(probe_template, identity.template))
            except ComparisonRejected as e:
                logger.warning(f"Comparison rejected for id={identity.id}: {e}; scoring 0")
                score = 0

            logger.debug(f"id={identity.id} score={score}")

            if score > best_score:
                best_score = score
                best_identity = identity

        outcome = MatchOutcome(
            matched_identity=best_identity,
            score=best_score,
            accepted=is_accepted(best_score),
        )

        logger.info(
            f"Identify over {len(gallery)} identities: best={best_score} "
            f"({best_identity.display_name if best_identity else 'none'}), accepted={outcome.accepted}"
        )
        return outcome
