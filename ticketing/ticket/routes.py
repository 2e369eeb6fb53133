# ticketing/ticket/routes.py
from fastapi import APIRouter, Depends, Request

from ticketing.ticket.schemas import ErrorOut, TicketCreate, TicketCreated, TicketOut, TicketValidate, TicketValidated
from ticketing.ticket.services import TicketAuthority

router = APIRouter(prefix="/api/tickets", tags=["Tickets"])

ERRORS = {
    400: {"model": ErrorOut},
    500: {"model": ErrorOut},
}


def get_authority(request: Request) -> TicketAuthority:
    return request.app.state.authority


@router.post("/create", response_model=TicketCreated, responses=ERRORS)
def create(payload: TicketCreate, authority: TicketAuthority = Depends(get_authority)):
    issued = authority.issue(payload.validity_days, payload.line_number)
    return TicketCreated(
        ticketId=issued.ticket.ticket_id,
        ticket=TicketOut(**issued.ticket.to_payload()),
        ticketBase64=issued.token,
    )


@router.post("/validate", response_model=TicketValidated, responses=ERRORS)
def validate(payload: TicketValidate, authority: TicketAuthority = Depends(get_authority)):
    outcome = authority.validate(payload.ticket_base64)
    return TicketValidated(
        valid=outcome.valid,
        message=outcome.message,
        ticketId=outcome.ticket.ticket_id,
        lineNumber=outcome.ticket.line_number,
    )


@router.get("", response_model=list[TicketOut])
def list_all(authority: TicketAuthority = Depends(get_authority)):
    return [TicketOut(**t.to_payload()) for t in authority.tickets()]
