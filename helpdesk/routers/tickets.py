from typing import Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from helpdesk.core.config import settings
from helpdesk.core.schemas import MessageResponse, PageParams, Pagination
from helpdesk.database import get_db
from helpdesk.dependencies import get_current_user, get_notifier, require_admin, require_agent
from helpdesk.models.ticket import TicketPriority, TicketStatus
from helpdesk.models.user import User
from helpdesk.schemas.ticket import (
    TicketActionResponse,
    TicketAssign,
    TicketCreate,
    TicketListResponse,
    TicketResponse,
    TicketUpdate,
)
from helpdesk.services.notification import NotificationService, TicketNotice
from helpdesk.services.tickets import TicketService

router = APIRouter(prefix="/tickets", tags=["tickets"])


class StatsResponse(BaseModel):
    success: bool = True
    stats: Dict[str, int]


def get_ticket_service(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TicketService:
    return TicketService(db, current_user)


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
def create_ticket(
    ticket_data: TicketCreate,
    background_tasks: BackgroundTasks,
    service: TicketService = Depends(get_ticket_service),
    notifier: NotificationService = Depends(get_notifier),
):
    """Submit a ticket. It always starts open and owned by the caller."""
    ticket = service.create(ticket_data)
    background_tasks.add_task(notifier.ticket_created, TicketNotice.for_submitter(ticket))
    return ticket


@router.get("", response_model=TicketListResponse)
def list_tickets(
    status: Optional[TicketStatus] = None,
    priority: Optional[TicketPriority] = None,
    assigned: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    service: TicketService = Depends(get_ticket_service),
):
    """
    Plain users only ever see their own tickets. Agents and admins see all
    tickets; ``assigned=true`` narrows an agent's view to their own queue.
    """
    params = PageParams(page=page, limit=limit)
    tickets, total = service.list(params, status=status, priority=priority, assigned=assigned, search=search)
    pagination = Pagination.build(total, params)
    return TicketListResponse(
        tickets=[TicketResponse.model_validate(t) for t in tickets],
        total=total,
        page=pagination.page,
        total_pages=pagination.total_pages,
    )


@router.get("/stats", response_model=StatsResponse)
def get_dashboard_stats(service: TicketService = Depends(get_ticket_service)):
    return StatsResponse(stats=service.stats())


@router.get("/{ticket_id}", response_model=TicketResponse)
def get_ticket(ticket_id: int, service: TicketService = Depends(get_ticket_service)):
    return service.get(ticket_id)


@router.put("/{ticket_id}", response_model=TicketResponse)
def update_ticket(
    ticket_id: int,
    ticket_data: TicketUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
    notifier: NotificationService = Depends(get_notifier),
):
    ticket, resolved_now = service.update(ticket_id, ticket_data)
    if resolved_now:
        background_tasks.add_task(notifier.ticket_resolved, TicketNotice.for_submitter(ticket, actor=current_user))
    return ticket


@router.delete("/{ticket_id}", response_model=MessageResponse)
def delete_ticket(ticket_id: int, service: TicketService = Depends(get_ticket_service)):
    service.delete(ticket_id)
    return MessageResponse(message="Ticket deleted successfully")


@router.put("/{ticket_id}/take", response_model=TicketActionResponse)
def take_ticket(
    ticket_id: int,
    current_user: User = Depends(require_agent()),
    db: Session = Depends(get_db),
):
    ticket = TicketService(db, current_user).take(ticket_id)
    return TicketActionResponse(
        message="Ticket assigned to you successfully",
        ticket=TicketResponse.model_validate(ticket),
    )


@router.put("/{ticket_id}/assign", response_model=TicketActionResponse)
def assign_ticket(
    ticket_id: int,
    assignment: TicketAssign,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_admin()),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    ticket, agent = TicketService(db, current_user).assign(ticket_id, assignment.assigned_agent_id)
    if agent is not None:
        background_tasks.add_task(notifier.ticket_assigned, TicketNotice.for_agent(ticket, agent, current_user))

    if ticket.assigned_agent is None:
        message = "Ticket unassigned successfully"
    else:
        message = f"Ticket assigned successfully to {ticket.assigned_agent.name}"
    return TicketActionResponse(message=message, ticket=TicketResponse.model_validate(ticket))
