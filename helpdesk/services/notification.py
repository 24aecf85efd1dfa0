"""
Ticket email notifications.

The SMTP client (`Mailer`) is created once at application startup, stored on
``app.state`` and closed at shutdown; request handlers receive it through a
dependency and hand a `NotificationService` to FastAPI background tasks, so
mail is sent after the response has been produced. Delivery problems are
logged and never reach the HTTP caller.
"""
import enum
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from helpdesk.core.config import MailSettings
from helpdesk.models.ticket import Ticket
from helpdesk.models.user import EmailPreference, User

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"


class NotificationEvent(str, enum.Enum):
    TICKET_CREATED = "ticket-created"
    TICKET_RESOLVED = "ticket-resolved"
    TICKET_ASSIGNED = "ticket-assigned"


IMPORTANT_EVENTS = frozenset({NotificationEvent.TICKET_RESOLVED, NotificationEvent.TICKET_ASSIGNED})


def should_notify(preference: EmailPreference, event: NotificationEvent) -> bool:
    if preference == EmailPreference.NONE:
        return False
    if preference == EmailPreference.IMPORTANT:
        return event in IMPORTANT_EVENTS
    return True


@dataclass(frozen=True)
class TicketNotice:
    """Detached snapshot of what an email needs; safe to use after the DB session closes."""
    ticket_id: int
    title: str
    priority: str
    resolution_notes: Optional[str]
    recipient_name: str
    recipient_email: str
    preference: EmailPreference
    actor_name: Optional[str] = None
    requester_name: Optional[str] = None

    @classmethod
    def for_submitter(cls, ticket: Ticket, actor: Optional[User] = None) -> "TicketNotice":
        submitter = ticket.submitter
        return cls(
            ticket_id=ticket.id,
            title=ticket.title,
            priority=ticket.priority.value,
            resolution_notes=ticket.resolution_notes,
            recipient_name=submitter.name,
            recipient_email=submitter.email,
            preference=submitter.email_notifications,
            actor_name=actor.name if actor else None,
            requester_name=submitter.name,
        )

    @classmethod
    def for_agent(cls, ticket: Ticket, agent: User, actor: User) -> "TicketNotice":
        return cls(
            ticket_id=ticket.id,
            title=ticket.title,
            priority=ticket.priority.value,
            resolution_notes=ticket.resolution_notes,
            recipient_name=agent.name,
            recipient_email=agent.email,
            preference=agent.email_notifications,
            actor_name=actor.name,
            requester_name=ticket.submitter.name,
        )


class Mailer:
    """SMTP transport. Disabled (sends nothing) when no SMTP host is configured."""

    def __init__(self, mail_settings: MailSettings):
        self.settings = mail_settings
        self._started = False

    @property
    def enabled(self) -> bool:
        return self._started and bool(self.settings.smtp_host)

    @property
    def sender(self) -> str:
        return self.settings.from_address

    def start(self) -> None:
        self._started = True
        if self.settings.smtp_host:
            logger.info(f"Mailer ready ({self.settings.smtp_host}:{self.settings.smtp_port})")
        else:
            logger.warning("SMTP_HOST not configured; email notifications are disabled")

    def close(self) -> None:
        self._started = False
        logger.info("Mailer stopped")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((smtplib.SMTPException, OSError)),
        reraise=True,
    )
    def send(self, message: EmailMessage) -> None:
        cfg = self.settings
        with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout) as smtp:
            if cfg.use_tls:
                smtp.starttls()
            if cfg.smtp_username:
                smtp.login(cfg.smtp_username, cfg.smtp_password or "")
            smtp.send_message(message)


class EmailRenderer:
    def __init__(self, template_dir: Path = TEMPLATE_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, template_name: str, **context) -> str:
        return self.env.get_template(template_name).render(**context)


class NotificationService:
    def __init__(self, mailer: Mailer, renderer: Optional[EmailRenderer] = None, support_email: str = ""):
        self.mailer = mailer
        self.renderer = renderer or EmailRenderer()
        self.support_email = support_email

    def ticket_created(self, notice: TicketNotice) -> bool:
        return self._dispatch(
            NotificationEvent.TICKET_CREATED,
            notice,
            subject=f"[Ticket #{notice.ticket_id}] Your support ticket has been created",
            template="ticket_created.html",
        )

    def ticket_resolved(self, notice: TicketNotice) -> bool:
        return self._dispatch(
            NotificationEvent.TICKET_RESOLVED,
            notice,
            subject=f"[Ticket #{notice.ticket_id}] Your support ticket has been resolved",
            template="ticket_resolved.html",
        )

    def ticket_assigned(self, notice: TicketNotice) -> bool:
        return self._dispatch(
            NotificationEvent.TICKET_ASSIGNED,
            notice,
            subject=f"[Ticket #{notice.ticket_id}] A ticket has been assigned to you",
            template="ticket_assigned.html",
        )

    def _dispatch(self, event: NotificationEvent, notice: TicketNotice, subject: str, template: str) -> bool:
        log_extra = {"ticket_id": notice.ticket_id, "notification": event.value}
        if not should_notify(notice.preference, event):
            logger.info("Notification skipped by user preference", extra=log_extra)
            return False
        if not self.mailer.enabled:
            logger.info("Mailer disabled, skipping notification", extra=log_extra)
            return False

        try:
            html = self.renderer.render(
                template,
                notice=notice,
                sent_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
                support_email=self.support_email,
            )
            message = EmailMessage()
            message["From"] = self.mailer.sender
            message["To"] = notice.recipient_email
            message["Subject"] = subject
            message["X-Ticket-ID"] = str(notice.ticket_id)
            message["X-Notification-Type"] = event.value
            message.set_content(f"{subject}\n\nTicket #{notice.ticket_id}: {notice.title}")
            message.add_alternative(html, subtype="html")
            self.mailer.send(message)
        except Exception:
            # Never propagate: the ticket change is already committed
            logger.exception("Failed to send notification email", extra=log_extra)
            return False

        logger.info("Notification email sent", extra=log_extra)
        return True
