"""Mail sender — templated notification email, single and bulk.

Learn: Email goes only to users whose send_notifications flag is on.
Templates live in templates/email/<name>/ as two Jinja2 files:

    subject.txt   one line, rendered with the recipient as `user`
    message.txt   plain-text body, same context

Bulk sends are a best-effort fan-out: recipients are loaded in one
query, then one coroutine per recipient is gathered with
return_exceptions=True. A failed delivery lands in BulkResult.errors and
never stops its siblings. The caller gets both lists.

Transports:
- LogTransport  (default) logs the rendered message, sends nothing
- SmtpTransport stdlib smtplib, run in a worker thread
"""

import asyncio
import smtplib
import uuid
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Iterable, Protocol

import structlog
from jinja2 import PackageLoader, TemplateNotFound
from jinja2.sandbox import SandboxedEnvironment
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eisenhower.config import settings
from eisenhower.db.models import User

logger = structlog.get_logger()

# Sandboxed: admins write raw bulk messages as templates too.
_env = SandboxedEnvironment(
    loader=PackageLoader("eisenhower", "templates/email"),
    autoescape=False,
    keep_trailing_newline=True,
)


class MailError(Exception):
    """A message could not be sent to a user."""


@dataclass(frozen=True)
class OutgoingMail:
    to_address: str
    to_name: str
    from_address: str
    subject: str
    text: str


@dataclass
class BulkResult:
    sent: list[int] = field(default_factory=list)
    errors: list[tuple[int, str]] = field(default_factory=list)


class MailTransport(Protocol):
    async def send(self, message: OutgoingMail) -> str:
        """Deliver a message and return its message id."""
        ...


class LogTransport:
    """Development transport — logs instead of sending."""

    async def send(self, message: OutgoingMail) -> str:
        message_id = f"<{uuid.uuid4().hex}@eisenhower.local>"
        logger.info(
            "mail.logged",
            to=message.to_address,
            subject=message.subject,
            message_id=message_id,
        )
        return message_id


class SmtpTransport:
    """Sends through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 25,
        user: str = "",
        password: str = "",
        use_tls: bool = False,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    async def send(self, message: OutgoingMail) -> str:
        return await asyncio.to_thread(self._send_sync, message)

    def _send_sync(self, message: OutgoingMail) -> str:
        msg = EmailMessage()
        msg["From"] = message.from_address
        msg["To"] = formataddr((message.to_name, message.to_address))
        msg["Subject"] = message.subject
        msg["Message-ID"] = make_msgid(domain="eisenhower")
        msg.set_content(message.text)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(msg)
        return msg["Message-ID"]


def get_mail_transport() -> MailTransport:
    """FastAPI dependency — the configured transport."""
    if settings.email_transport == "smtp":
        return SmtpTransport(
            host=settings.email_host,
            port=settings.email_port,
            user=settings.email_user,
            password=settings.email_password,
            use_tls=settings.email_use_tls,
        )
    return LogTransport()


def load_template(name: str) -> tuple[str, str]:
    """Return the raw (subject, message) sources of a named template."""
    try:
        subject = _env.loader.get_source(_env, f"{name}/subject.txt")[0]
        message = _env.loader.get_source(_env, f"{name}/message.txt")[0]
    except TemplateNotFound as e:
        raise MailError(f"Unknown email template '{name}'") from e
    return subject.strip(), message


class MailSender:
    """Renders templates per recipient and hands them to a transport."""

    def __init__(self, db: AsyncSession, transport: MailTransport):
        self.db = db
        self.transport = transport

    # ─── Single recipient ────────────────────────────────

    async def send(self, user_id: int, template: str) -> str:
        subject, message = load_template(template)
        return await self.send_raw(user_id, subject, message)

    async def send_raw(self, user_id: int, subject: str, message: str) -> str:
        user = await self.db.get(User, user_id)
        if user is None:
            raise MailError("User not found")
        return await self.deliver(user, subject, message)

    async def deliver(self, user: User, subject: str, message: str) -> str:
        """Render and send to an already loaded user (no database access)."""
        if not user.send_notifications:
            logger.info("mail.refused", user_id=user.id, reason="preferences")
            raise MailError("User not accepting email.")

        context = {"user": user, "website": settings.verifier_audience}
        outgoing = OutgoingMail(
            to_address=user.email,
            to_name=user.name or "",
            from_address=settings.email_from,
            subject=_env.from_string(subject).render(context).strip(),
            text=_env.from_string(message).render(context),
        )
        message_id = await self.transport.send(outgoing)
        logger.info("mail.sent", user_id=user.id, subject=outgoing.subject)
        return message_id

    # ─── Bulk ────────────────────────────────────────────

    async def send_bulk(self, user_ids: Iterable[int], template: str) -> BulkResult:
        subject, message = load_template(template)
        return await self.send_bulk_raw(user_ids, subject, message)

    async def send_bulk_raw(
        self, user_ids: Iterable[int], subject: str, message: str
    ) -> BulkResult:
        wanted = list(dict.fromkeys(user_ids))
        result = BulkResult()
        if not wanted:
            return result

        rows = await self.db.execute(select(User).where(User.id.in_(wanted)))
        users = {user.id: user for user in rows.scalars().all()}

        recipients = []
        for user_id in wanted:
            user = users.get(user_id)
            if user is None:
                logger.warning("mail.unknown_user", user_id=user_id)
                result.errors.append((user_id, "User not found"))
            elif not user.send_notifications:
                logger.info("mail.refused", user_id=user_id, reason="preferences")
            else:
                recipients.append(user)

        outcomes = await asyncio.gather(
            *(self.deliver(user, subject, message) for user in recipients),
            return_exceptions=True,
        )
        for user, outcome in zip(recipients, outcomes):
            if isinstance(outcome, Exception):
                logger.error("mail.failed", user_id=user.id, error=str(outcome))
                result.errors.append((user.id, str(outcome)))
            else:
                result.sent.append(user.id)

        logger.info("mail.bulk_done", sent=len(result.sent), failed=len(result.errors))
        return result


async def send_welcome(user: User, transport: MailTransport) -> None:
    """Background job run after account creation."""
    sender = MailSender(db=None, transport=transport)
    try:
        subject, message = load_template("welcome")
        await sender.deliver(user, subject, message)
    except (MailError, OSError) as e:
        logger.warning("mail.welcome_failed", user_id=user.id, error=str(e))
