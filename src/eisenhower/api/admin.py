"""Administrator API routes.

Learn: Bulk email is the only admin-only action beyond user management.
The message is sent to every user who accepts notifications; per-user
failures come back in the response body instead of failing the request.
"""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eisenhower.auth.dependencies import get_admin_user
from eisenhower.auth.session import SessionContext
from eisenhower.db.engine import get_db
from eisenhower.db.models import User
from eisenhower.schemas.auth import AdminEmail, BulkMailRead, MailFailure
from eisenhower.services.mail import MailSender, MailTransport, get_mail_transport

logger = structlog.get_logger()

router = APIRouter(prefix="/admin")


@router.post("/email", response_model=BulkMailRead)
async def send_email(
    body: AdminEmail,
    ctx: SessionContext = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
    transport: MailTransport = Depends(get_mail_transport),
):
    """Send one message to every user accepting notifications."""
    result = await db.execute(
        select(User.id).where(User.send_notifications.is_(True)).order_by(User.id)
    )
    user_ids = list(result.scalars().all())

    logger.info("admin.bulk_email", by=ctx.user_id, recipients=len(user_ids))
    outcome = await MailSender(db, transport).send_bulk_raw(
        user_ids, body.subject, body.message
    )
    return BulkMailRead(
        sent=outcome.sent,
        errors=[MailFailure(user_id=uid, message=msg) for uid, msg in outcome.errors],
    )
