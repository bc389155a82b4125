import logging

from fastapi import APIRouter, Depends
from supabase import Client

from shiptrack.config import Settings, get_settings
from shiptrack.errors import TrackingError, UpstreamError
from shiptrack.schemas import ErrorResponse, ShipmentDetailResponse, ShipmentListResponse, VerifiedIdentity
from shiptrack.services.access import scopes_for
from shiptrack.services.auth import current_identity
from shiptrack.services.shipments import authorize_shipment, find_shipment, list_shipments
from shiptrack.services.supabase_client import get_supabase

logger = logging.getLogger(__name__)

# Configuration is checked before any endpoint dependency touches the token
router = APIRouter(prefix="/api/shipments", tags=["Shipments"], dependencies=[Depends(get_settings)])

ERROR_RESPONSES = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.get("", response_model=ShipmentListResponse, responses=ERROR_RESPONSES)
def shipments_for_caller(
    settings: Settings = Depends(get_settings),
    identity: VerifiedIdentity = Depends(current_identity),
    db: Client = Depends(get_supabase),
):
    try:
        scopes = scopes_for(db, identity.email)
        rows = list_shipments(db, scopes, limit=settings.list_limit, workers=settings.event_workers)
    except TrackingError:
        raise
    except Exception as e:
        logger.exception("Shipment list failed for %s", identity.email)
        raise UpstreamError(str(e))

    logger.info("Listed %d shipment(s) for %s", len(rows), identity.email)
    return ShipmentListResponse(data=rows, email=identity.email)


@router.get("/{shipment_id:path}", response_model=ShipmentDetailResponse, responses=ERROR_RESPONSES)
def shipment_detail(
    shipment_id: str,
    identity: VerifiedIdentity = Depends(current_identity),
    db: Client = Depends(get_supabase),
):
    try:
        row = find_shipment(db, shipment_id)
        # Scopes are re-resolved here, never carried over from the list view
        scopes = scopes_for(db, identity.email)
        shipment, events = authorize_shipment(db, row, scopes)
    except TrackingError:
        raise
    except Exception as e:
        logger.exception("Shipment detail failed for %s", shipment_id)
        raise UpstreamError(str(e))

    return ShipmentDetailResponse(shipment=shipment, events=events)
