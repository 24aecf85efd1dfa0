from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from helpdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from helpdesk.core.permissions import (
    Action,
    Resource,
    can_be_assigned,
    ensure_allowed,
    is_allowed,
    writable_ticket_fields,
)
from helpdesk.core.schemas import PageParams
from helpdesk.models.ticket import Ticket, TicketPriority, TicketStatus
from helpdesk.models.user import User, UserRole
from helpdesk.schemas.ticket import TicketCreate, TicketUpdate
from helpdesk.services.base import BaseService

# Columns that can never be set to NULL through an update payload
_REQUIRED_FIELDS = ("title", "description", "priority", "status")


def status_breakdown(db: Session, user_ids: Iterable[int]) -> Dict[int, Dict[str, int]]:
    """Per-submitter ticket counts keyed by user id, in the TicketStats shape."""
    user_ids = list(user_ids)
    result = {
        uid: {
            "total_tickets": 0,
            "open_tickets": 0,
            "in_progress_tickets": 0,
            "resolved_tickets": 0,
            "closed_tickets": 0,
        }
        for uid in user_ids
    }
    if not user_ids:
        return result
    rows = (
        db.query(Ticket.user_id, Ticket.status, func.count(Ticket.id))
        .filter(Ticket.user_id.in_(user_ids))
        .group_by(Ticket.user_id, Ticket.status)
        .all()
    )
    for user_id, status, count in rows:
        result[user_id]["total_tickets"] += count
        result[user_id][f"{status.value}_tickets"] = count
    return result


class TicketService(BaseService):
    """Ticket lifecycle: submission, triage, assignment and resolution."""

    def __init__(self, db: Session, current_user: User):
        super().__init__(db, current_user)

    # --- Queries -----------------------------------------------------------

    def _with_people(self, query):
        return query.options(joinedload(Ticket.submitter), joinedload(Ticket.assigned_agent))

    def _find(self, ticket_id: int) -> Optional[Ticket]:
        return self._with_people(self.db.query(Ticket)).filter(Ticket.id == ticket_id).first()

    def get(self, ticket_id: int) -> Ticket:
        """Tickets the caller may not see are reported as missing."""
        ticket = self._find(ticket_id)
        if ticket is None or not is_allowed(self.current_user, Resource.TICKET, Action.READ, owner_id=ticket.user_id):
            raise NotFoundError("Ticket")
        return ticket

    def list(
        self,
        params: PageParams,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        assigned: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Ticket], int]:
        user = self.current_user
        query = self.db.query(Ticket)

        if not is_allowed(user, Resource.TICKET, Action.LIST_ALL):
            query = query.filter(Ticket.user_id == user.id)

        if status:
            query = query.filter(Ticket.status == status)
        if priority:
            query = query.filter(Ticket.priority == priority)
        if assigned is True:
            if user.role == UserRole.AGENT:
                query = query.filter(Ticket.assigned_agent_id == user.id)
            else:
                query = query.filter(Ticket.assigned_agent_id.isnot(None))
        elif assigned is False:
            query = query.filter(Ticket.assigned_agent_id.is_(None))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Ticket.title.ilike(pattern), Ticket.description.ilike(pattern)))

        total = query.count()
        tickets = (
            self._with_people(query)
            .order_by(Ticket.created_at.desc(), Ticket.id.desc())
            .offset(params.offset)
            .limit(params.limit)
            .all()
        )
        return tickets, total

    def stats(self) -> Dict[str, int]:
        user = self.current_user

        def count(*criteria) -> int:
            return self.db.query(func.count(Ticket.id)).filter(*criteria).scalar() or 0

        if user.role == UserRole.ADMIN:
            by_status = dict(
                self.db.query(Ticket.status, func.count(Ticket.id)).group_by(Ticket.status).all()
            )
            return {
                "total_tickets": sum(by_status.values()),
                "open_tickets": by_status.get(TicketStatus.OPEN, 0),
                "in_progress_tickets": by_status.get(TicketStatus.IN_PROGRESS, 0),
                "resolved_tickets": by_status.get(TicketStatus.RESOLVED, 0),
                "closed_tickets": by_status.get(TicketStatus.CLOSED, 0),
                "total_users": self.db.query(func.count(User.id)).filter(User.role == UserRole.USER).scalar() or 0,
                "total_agents": self.db.query(func.count(User.id)).filter(User.role == UserRole.AGENT).scalar() or 0,
            }
        if user.role == UserRole.AGENT:
            return {
                "my_tickets": count(Ticket.assigned_agent_id == user.id),
                "my_resolved_tickets": count(
                    Ticket.assigned_agent_id == user.id, Ticket.status == TicketStatus.RESOLVED
                ),
                "unassigned_tickets": count(Ticket.assigned_agent_id.is_(None)),
            }
        return {
            "my_tickets": count(Ticket.user_id == user.id),
            "my_open_tickets": count(Ticket.user_id == user.id, Ticket.status == TicketStatus.OPEN),
            "my_resolved_tickets": count(Ticket.user_id == user.id, Ticket.status == TicketStatus.RESOLVED),
        }

    # --- Commands ----------------------------------------------------------

    def create(self, data: TicketCreate) -> Ticket:
        ensure_allowed(self.current_user, Resource.TICKET, Action.CREATE)
        ticket = Ticket(
            title=data.title,
            description=data.description,
            priority=data.priority,
            status=TicketStatus.OPEN,
            user_id=self.current_user.id,
        )
        self.db.add(ticket)
        self._commit(ticket)
        self.log_info("Ticket created", ticket_id=ticket.id, priority=ticket.priority.value)
        return ticket

    def update(self, ticket_id: int, data: TicketUpdate) -> Tuple[Ticket, bool]:
        """
        Apply the fields the caller's role may write.

        Returns the ticket and whether this update moved it into RESOLVED.
        """
        user = self.current_user
        ticket = self.get(ticket_id)
        ensure_allowed(user, Resource.TICKET, Action.UPDATE, owner_id=ticket.user_id)

        requested = data.model_dump(exclude_unset=True)
        allowed = writable_ticket_fields(user)
        ignored = sorted(set(requested) - allowed)
        if ignored:
            self.log_info("Ignoring ticket fields not writable by role", ticket_id=ticket.id, fields=ignored)

        changes = {k: v for k, v in requested.items() if k in allowed}
        for field in _REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                changes.pop(field)
        if not changes:
            raise ValidationError("No valid fields provided for update")

        if changes.get("assigned_agent_id") is not None:
            self._load_assignee(changes["assigned_agent_id"])

        was_resolved = ticket.status == TicketStatus.RESOLVED
        new_status = changes.get("status", ticket.status)
        notes = changes.get("resolution_notes", ticket.resolution_notes)
        if new_status == TicketStatus.RESOLVED and not (notes and notes.strip()):
            raise ValidationError("Resolution notes are required when resolving a ticket")

        for field, value in changes.items():
            setattr(ticket, field, value)

        resolved_now = new_status == TicketStatus.RESOLVED and not was_resolved
        if resolved_now:
            ticket.resolved_at = datetime.now(timezone.utc)
        elif new_status in (TicketStatus.OPEN, TicketStatus.IN_PROGRESS):
            ticket.resolved_at = None

        self._commit(ticket)
        self.log_info("Ticket updated", ticket_id=ticket.id, fields=sorted(changes))
        return ticket, resolved_now

    def delete(self, ticket_id: int) -> None:
        ticket = self.get(ticket_id)
        ensure_allowed(self.current_user, Resource.TICKET, Action.DELETE, owner_id=ticket.user_id)
        self.db.delete(ticket)
        self._commit()
        self.log_info("Ticket deleted", ticket_id=ticket_id)

    def take(self, ticket_id: int) -> Ticket:
        """Claim an unassigned ticket for the calling agent."""
        user = self.current_user
        ensure_allowed(user, Resource.TICKET, Action.TAKE, message="Only agents can take tickets")
        ticket = self.get(ticket_id)

        # Conditional UPDATE: of two concurrent claims exactly one matches a row
        claimed = (
            self.db.query(Ticket)
            .filter(Ticket.id == ticket.id, Ticket.assigned_agent_id.is_(None))
            .update({Ticket.assigned_agent_id: user.id}, synchronize_session=False)
        )
        self._commit()
        self.db.expire(ticket)

        if not claimed:
            holder = ticket.assigned_agent
            if holder is not None and holder.id == user.id:
                raise ConflictError(
                    "You have already taken this ticket",
                    details={"assigned_agent_id": holder.id, "assigned_to_name": holder.name},
                )
            holder_name = holder.name if holder else "another agent"
            raise ConflictError(
                f"Ticket is already assigned to {holder_name}",
                details={"assigned_agent_id": ticket.assigned_agent_id, "assigned_to_name": holder_name},
            )

        self.log_info("Ticket taken", ticket_id=ticket.id)
        return ticket

    def assign(self, ticket_id: int, agent_id: Optional[int]) -> Tuple[Ticket, Optional[User]]:
        """
        Admin assignment. Returns the ticket and the agent that newly
        received it (None when unassigning or when nothing changed).
        """
        user = self.current_user
        ensure_allowed(user, Resource.TICKET, Action.ASSIGN, message="Only administrators can assign tickets")
        ticket = self.get(ticket_id)

        if agent_id is None:
            ticket.assigned_agent_id = None
            self._commit(ticket)
            self.log_info("Ticket unassigned", ticket_id=ticket.id)
            return ticket, None

        agent = self._load_assignee(agent_id)
        current = ticket.assigned_agent
        if current is not None and current.id != agent.id:
            raise ConflictError(
                f"Ticket is already assigned to {current.name}. Please unassign first if you want to reassign.",
                details={"assigned_agent_id": current.id, "assigned_to_name": current.name},
            )
        if current is not None:
            return ticket, None

        ticket.assigned_agent_id = agent.id
        self._commit(ticket)
        self.log_info("Ticket assigned", ticket_id=ticket.id, agent_id=agent.id)
        return ticket, agent

    def _load_assignee(self, agent_id: int) -> User:
        agent = self.db.get(User, agent_id)
        if agent is None or not can_be_assigned(agent):
            raise ValidationError("Invalid agent ID", details={"assigned_agent_id": agent_id})
        return agent
