"""
Admin Routes
Audit log, import/export and statistics endpoints.
"""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from fpgallery.errors import ControllerBusyError, StorageError
from fpgallery.models_serialization import audit_entry_to_dict

from ..logger import log_biometric
from ..responses import raise_for_result


router = APIRouter(tags=["Admin"])


# Global references (set by server.py)
controller = None
db = None


def set_globals(ctrl, database=None):
    """Set global controller and database references."""
    global controller, db
    controller = ctrl
    db = database


@router.get("/audit")
async def get_audit_log():
    """
    Recent verification attempts, oldest first (at most 50).

    Returns:
        - entries: [{timestamp, name, score, success}]
    """
    entries = [audit_entry_to_dict(entry) for entry in controller.audit.list()]
    return {"entries": entries, "count": len(entries)}


@router.get("/export")
async def export_gallery():
    """
    Export gallery and last capture as a portable JSON document.

    Returns:
        {users, lastCapture, exportDate} as a downloadable attachment
    """
    try:
        document = controller.export()
    except ControllerBusyError as e:
        raise HTTPException(status_code=409, detail={"message": str(e)})

    log_biometric("EXPORT", None, "SUCCESS", details={'users': len(document['users'])})

    filename = f"fingerprint-gallery-{document['exportDate'][:10]}.json"
    return JSONResponse(
        content=document,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/import")
async def import_gallery(request: Request):
    """
    Replace the gallery (and last capture) with an exported document.

    The import is a destructive overwrite, not a merge. Invalid documents are
    rejected with 422 and leave the current gallery unchanged.

    Body:
        JSON exchange document {users, lastCapture, exportDate}
    """
    body = await request.body()
    result = controller.import_(body)

    if not result.ok:
        log_biometric("IMPORT", None, "FAILURE", details={'reason': result.message})
    raise_for_result(result)

    log_biometric("IMPORT", None, "SUCCESS", details={'users': len(controller.store)})

    return {"message": result.message, "count": len(controller.store), "warnings": result.warnings}


@router.get("/stats")
async def get_stats():
    """
    Gallery and storage statistics.
    """
    stats = {
        "num_users": len(controller.store),
        "num_audit_entries": len(controller.audit),
        "has_last_capture": controller.store.last_capture is not None,
        "busy": controller.busy,
    }
    if db is not None:
        try:
            stats["storage"] = db.get_stats()
        except StorageError as e:
            raise HTTPException(status_code=500, detail={"message": f"Storage error: {e}"})

    return stats
