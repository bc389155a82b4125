# schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

SHIPMENT_LIST_COLUMNS = (
    "shipment_id, hawb, mawb, po_number, customer_reference, origin, "
    "destination, current_status, eta_updated, last_event_time"
)
SHIPMENT_DETAIL_COLUMNS = SHIPMENT_LIST_COLUMNS + ", customer_id"
EVENT_COLUMNS = "event_time, event_code, notes, location, source_column"


class ShipmentBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    shipment_id: str = Field(..., description="Unique shipment identifier")
    hawb: Optional[str] = Field(None, description="House air waybill")
    mawb: Optional[str] = Field(None, description="Master air waybill")
    po_number: Optional[str] = None
    customer_reference: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    current_status: Optional[str] = Field(None, description="Free-text status from ingestion")
    eta_updated: Optional[str] = None
    last_event_time: Optional[str] = None


class ShipmentSummary(ShipmentBase):
    latest_event_code: Optional[str] = None


class ShipmentDetail(ShipmentBase):
    customer_id: Optional[str] = None


class Event(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event_time: Optional[str] = None
    event_code: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    source_column: Optional[str] = None


class ShipmentListResponse(BaseModel):
    data: list[ShipmentSummary]
    email: str


class ShipmentDetailResponse(BaseModel):
    shipment: ShipmentDetail
    events: list[Event]


class ErrorResponse(BaseModel):
    error: str


class VerifiedIdentity(BaseModel):
    email: str
    user_id: Optional[str] = None
