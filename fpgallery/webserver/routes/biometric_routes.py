"""
Biometric Operations Routes
Capture and Identify (1:N) operations.
"""

from fastapi import APIRouter, HTTPException
import asyncio

from fpgallery.config import ACCEPTANCE_THRESHOLD, MAX_MATCH_SCORE

from ..logger import log_biometric
from ..responses import raise_for_result, identity_summary, capture_summary


router = APIRouter(tags=["Biometric Operations"])


# Global reference to the controller (set by server.py)
controller = None


def set_controller(ctrl):
    """Set global controller reference."""
    global controller
    controller = ctrl


@router.post("/capture")
async def capture():
    """
    Capture a fingerprint without enrolling or verifying it.

    Returns:
        - capture: {template, image, quality, nfiq}
        - message: Status message
    """
    loop = asyncio.get_event_loop()
    result = await loop.run_in_executor(None, controller.capture)
    raise_for_result(result)

    log_biometric(
        "CAPTURE",
        None,
        "SUCCESS",
        details={'quality': result.capture.quality_score, 'nfiq': result.capture.nfiq_score}
    )

    return {
        "capture": capture_summary(result.capture),
        "message": result.message,
        "warnings": result.warnings,
    }


@router.get("/capture/last")
async def last_capture():
    """
    Most recent successful capture.
    """
    last = controller.store.last_capture
    if last is None:
        raise HTTPException(status_code=404, detail="No capture yet")

    return {"capture": capture_summary(last)}


@router.post("/verify")
async def verify():
    """
    1:N identification of a freshly captured fingerprint against all enrolled identities.

    Returns:
        - accepted: True if best score > threshold
        - score: Best matching score (0-199)
        - user: Matched identity (only when accepted)
        - threshold / max_score: Acceptance threshold and score scale
        - message: Status message
    """
    loop = asyncio.get_event_loop()
    result = await loop.run_in_executor(None, controller.verify)

    if not result.ok:
        log_biometric("VERIFY", None, "ERROR", details={'reason': result.message})
    raise_for_result(result)

    outcome = result.outcome
    best = outcome.matched_identity

    log_biometric(
        "VERIFY",
        best.id if outcome.accepted else None,
        "MATCH" if outcome.accepted else "NO_MATCH",
        details={'score': outcome.score, 'gallery_size': len(controller.store)}
    )

    return {
        "accepted": outcome.accepted,
        "score": outcome.score,
        "user": identity_summary(best) if outcome.accepted else None,
        "threshold": ACCEPTANCE_THRESHOLD,
        "max_score": MAX_MATCH_SCORE,
        "message": result.message,
        "warnings": result.warnings,
    }
