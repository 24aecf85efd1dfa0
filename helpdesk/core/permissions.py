"""
Central permission policy.

Every authorization decision about tickets, knowledge articles and user
accounts is answered here from a single resource x action x role matrix.
Routers and services ask `is_allowed` / `ensure_allowed` instead of comparing
role strings themselves.

Two kinds of grant exist in the matrix:
- a role grant: any user holding one of the listed roles may act;
- an owner grant: the listed roles may act only on records they own
  (the ticket submitter, the article creator, the account holder).
"""
import enum
from typing import Dict, FrozenSet, Optional, Tuple

from helpdesk.core.exceptions import AccessDeniedError
from helpdesk.models.user import User, UserRole


class Resource(str, enum.Enum):
    TICKET = "ticket"
    ARTICLE = "article"
    ACCOUNT = "account"


class Action(str, enum.Enum):
    CREATE = "create"
    READ = "read"
    LIST_ALL = "list_all"
    UPDATE = "update"
    TRIAGE = "triage"      # status, resolution notes, assignment
    DELETE = "delete"
    TAKE = "take"
    ASSIGN = "assign"
    MANAGE = "manage"      # role changes, deactivation, deletion of accounts


_ALL = frozenset(UserRole)
_STAFF = frozenset({UserRole.AGENT, UserRole.ADMIN})
_ADMIN = frozenset({UserRole.ADMIN})
_NONE: FrozenSet[UserRole] = frozenset()

# (resource, action) -> (roles granted outright, roles granted on owned records)
PERMISSIONS: Dict[Tuple[Resource, Action], Tuple[FrozenSet[UserRole], FrozenSet[UserRole]]] = {
    (Resource.TICKET, Action.CREATE): (_ALL, _NONE),
    (Resource.TICKET, Action.LIST_ALL): (_STAFF, _NONE),
    (Resource.TICKET, Action.READ): (_STAFF, _ALL),
    (Resource.TICKET, Action.UPDATE): (_STAFF, _ALL),
    (Resource.TICKET, Action.TRIAGE): (_STAFF, _NONE),
    (Resource.TICKET, Action.DELETE): (_STAFF, _ALL),
    (Resource.TICKET, Action.TAKE): (_STAFF, _NONE),
    (Resource.TICKET, Action.ASSIGN): (_ADMIN, _NONE),

    (Resource.ARTICLE, Action.CREATE): (_ALL, _NONE),
    (Resource.ARTICLE, Action.UPDATE): (_STAFF, _ALL),
    (Resource.ARTICLE, Action.DELETE): (_STAFF, _ALL),

    (Resource.ACCOUNT, Action.READ): (_ADMIN, _ALL),
    (Resource.ACCOUNT, Action.LIST_ALL): (_ADMIN, _NONE),
    (Resource.ACCOUNT, Action.MANAGE): (_ADMIN, _NONE),
}

# Fields of a ticket each role may write on update
SUBMITTER_TICKET_FIELDS = frozenset({"title", "description", "priority"})
TRIAGE_TICKET_FIELDS = frozenset({"status", "resolution_notes", "assigned_agent_id"})


def is_allowed(user: User, resource: Resource, action: Action, owner_id: Optional[int] = None) -> bool:
    granted, owner_granted = PERMISSIONS.get((resource, action), (_NONE, _NONE))
    if user.role in granted:
        return True
    return owner_id is not None and owner_id == user.id and user.role in owner_granted


def ensure_allowed(
    user: User,
    resource: Resource,
    action: Action,
    owner_id: Optional[int] = None,
    message: str = "Access denied",
) -> None:
    if not is_allowed(user, resource, action, owner_id):
        raise AccessDeniedError(message)


def writable_ticket_fields(user: User) -> FrozenSet[str]:
    if is_allowed(user, Resource.TICKET, Action.TRIAGE):
        return SUBMITTER_TICKET_FIELDS | TRIAGE_TICKET_FIELDS
    return SUBMITTER_TICKET_FIELDS


def can_be_assigned(user: User) -> bool:
    """Only staff accounts may hold tickets."""
    return user.is_active and user.role.at_least(UserRole.AGENT)
