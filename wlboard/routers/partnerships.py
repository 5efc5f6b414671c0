# wlboard/routers/partnerships.py
from fastapi import APIRouter, Depends

from wlboard.core.auth import actor_for, get_current_identity, require_admin_if_auth
from wlboard.dependencies import get_partnership_service, get_presence
from wlboard.models.user import Identity
from wlboard.realtime.presence import PresenceRegistry
from wlboard.schemas.partnership import PartnershipCreate, PartnershipUpdate
from wlboard.services.partnership_service import PartnershipService

router = APIRouter(prefix="/partnerships", tags=["Partnerships"])

# Mutating handlers are `async def` so they run on the event loop:
# a mutation, its persistence request and its broadcast are never
# interleaved with another handler touching the same store.


@router.get("")
def list_partnerships(
    identity: Identity | None = Depends(get_current_identity),
    service: PartnershipService = Depends(get_partnership_service),
    presence: PresenceRegistry = Depends(get_presence),
):
    """
    List every partnership, newest first.

    Auth:
      - Requires a valid session token on the authenticated board.
    """
    records = service.list_records()
    return {
        "success": True,
        "data": [r.model_dump() for r in records],
        "count": len(records),
        "connectedUsers": len(presence),
    }


@router.post("")
async def create_partnership(
    payload: PartnershipCreate | None = None,
    identity: Identity | None = Depends(get_current_identity),
    service: PartnershipService = Depends(get_partnership_service),
):
    """
    Create a partnership and broadcast `recordAdded`.
    The new record is placed first in the list.
    """
    payload = payload or PartnershipCreate()
    record = service.create(payload, actor_for(identity, payload.userName))
    return {
        "success": True,
        "data": record.model_dump(),
        "message": "Partnership created successfully",
    }


@router.put("/{record_id}")
async def update_partnership(
    record_id: str,
    payload: PartnershipUpdate | None = None,
    identity: Identity | None = Depends(get_current_identity),
    service: PartnershipService = Depends(get_partnership_service),
):
    """
    Merge the sent fields into a partnership and broadcast `recordUpdated`.
    404 if the id is unknown.
    """
    payload = payload or PartnershipUpdate()
    record = service.update(record_id, payload, actor_for(identity, payload.userName))
    return {
        "success": True,
        "data": record.model_dump(),
        "message": "Partnership updated successfully",
    }


@router.delete("/{record_id}")
async def delete_partnership(
    record_id: str,
    identity: Identity | None = Depends(get_current_identity),
    service: PartnershipService = Depends(get_partnership_service),
):
    """
    Remove a partnership and broadcast `recordDeleted`.
    Echoes the removed record. 404 if the id is unknown.
    """
    record = service.delete(record_id, actor_for(identity))
    return {
        "success": True,
        "data": record.model_dump(),
        "message": "Partnership removed successfully",
    }


@router.delete("")
async def clear_partnerships(
    identity: Identity | None = Depends(require_admin_if_auth),
    service: PartnershipService = Depends(get_partnership_service),
):
    """
    Remove every partnership and broadcast `allRecordsCleared`.

    Auth:
      - Admin only on the authenticated board.
    """
    count = service.clear_all(actor_for(identity))
    return {
        "success": True,
        "count": count,
        "message": f"{count} partnerships removed successfully",
    }
