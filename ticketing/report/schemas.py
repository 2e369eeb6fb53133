# ticketing/report/schemas.py
from datetime import datetime

from pydantic import BaseModel


class ReportAck(BaseModel):
    success: bool
    message: str


class ReportOut(BaseModel):
    id: int
    received_at: datetime
    gate_id: str | None = None
    content_type: str | None = None
    body: str

    model_config = {"from_attributes": True}
