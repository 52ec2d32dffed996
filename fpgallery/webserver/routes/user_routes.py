"""
User Management Routes
Enroll, list and delete gallery identities.
"""

from fastapi import APIRouter, Form, HTTPException
import asyncio

from ..logger import log_biometric
from ..responses import raise_for_result, identity_summary


router = APIRouter(tags=["Users"])


# Global reference to the controller (set by server.py)
controller = None


def set_controller(ctrl):
    """Set global controller reference."""
    global controller
    controller = ctrl


@router.post("", status_code=201)
async def add_user(name: str = Form("")):
    """
    Capture a fingerprint and enroll it as a new identity.

    Duplicate names are allowed: every enrollment creates a distinct identity.

    Form Data:
        - name: Display name (trimmed, must not be empty)

    Returns:
        - user: Enrolled identity (without template)
        - quality / nfiq: Capture quality of the enrolled sample
        - message: Status message
    """
    loop = asyncio.get_event_loop()
    result = await loop.run_in_executor(None, controller.enroll, name)

    if not result.ok:
        log_biometric("ENROLL", name.strip() or None, "FAILURE", details={'reason': result.message})
    raise_for_result(result)

    log_biometric(
        "ENROLL",
        result.identity.id,
        "SUCCESS",
        details={
            'name': result.identity.display_name,
            'quality': result.capture.quality_score,
            'nfiq': result.capture.nfiq_score,
        }
    )

    return {
        "user": identity_summary(result.identity),
        "quality": result.capture.quality_score,
        "nfiq": result.capture.nfiq_score,
        "message": result.message,
        "warnings": result.warnings,
    }


@router.get("")
async def list_users():
    """
    List all enrolled identities in enrollment order.

    Returns:
        - users: List of identities (without template data)
        - count: Gallery size
    """
    users = [identity_summary(identity) for identity in controller.store.list()]
    return {"users": users, "count": len(users)}


@router.get("/{user_id}")
async def get_user(user_id: str):
    """
    Get identity details by ID.

    Path Parameters:
        - user_id: Identity identifier
    """
    identity = controller.store.get(user_id)

    if not identity:
        raise HTTPException(
            status_code=404,
            detail=f"User not found: {user_id}"
        )

    return identity_summary(identity)


@router.delete("/{user_id}")
async def delete_user(user_id: str):
    """
    Delete an identity. Unknown IDs are a no-op.

    Path Parameters:
        - user_id: Identity identifier
    """
    existed = controller.store.get(user_id) is not None
    result = controller.delete(user_id)
    raise_for_result(result)

    log_biometric("DELETE", user_id, "SUCCESS" if existed else "NOOP")

    return {"message": result.message, "deleted": existed, "warnings": result.warnings}


@router.delete("")
async def delete_all_users():
    """
    Delete every enrolled identity.
    """
    result = controller.clear()
    raise_for_result(result)

    log_biometric("CLEAR", None, "SUCCESS", details={'message': result.message})

    return {"message": result.message, "warnings": result.warnings}
