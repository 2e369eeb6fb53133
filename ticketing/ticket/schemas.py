# ticketing/ticket/schemas.py
from pydantic import BaseModel, ConfigDict, Field


class TicketCreate(BaseModel):
    validity_days: int = Field(..., alias="validityDays")
    line_number: int = Field(..., alias="lineNumber")

    model_config = ConfigDict(strict=True, populate_by_name=True)


class TicketValidate(BaseModel):
    ticket_base64: str = Field(..., alias="ticketBase64", min_length=1)

    model_config = ConfigDict(strict=True, populate_by_name=True)


class TicketOut(BaseModel):
    ticketId: str
    creationDate: str
    validityDays: int
    lineNumber: int


class TicketCreated(BaseModel):
    success: bool = True
    ticketId: str
    ticket: TicketOut
    ticketBase64: str


class TicketValidated(BaseModel):
    success: bool = True
    valid: bool
    message: str
    ticketId: str
    lineNumber: int


class ErrorOut(BaseModel):
    success: bool = False
    error: str
