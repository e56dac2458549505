"""Pydantic schemas for user accounts.

Learn: Booleans are StrictBool. "true", "yes" or 1 for isAdmin are
rejected with 400 at the request boundary instead of being coerced.

Emails are checked by EmailStr (email-validator) and stored lower-cased,
so uniqueness holds regardless of how the address was typed.

UserUpdate fields are all optional; which fields were actually sent
(model_fields_set) is what the role-escalation guard inspects.
"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, EmailStr, Field, StrictBool

from eisenhower.schemas.base import ApiModel

Email = Annotated[EmailStr, AfterValidator(str.lower)]


class UserCreate(ApiModel):
    email: Email
    name: str = Field(default="", max_length=70)
    is_admin: StrictBool = False
    send_notifications: StrictBool = True
    research_participant: StrictBool = True


class UserUpdate(ApiModel):
    """Partial update. Only the fields sent are applied."""
    email: Optional[Email] = None
    name: Optional[str] = Field(None, max_length=70)
    is_admin: Optional[StrictBool] = None
    send_notifications: Optional[StrictBool] = None
    research_participant: Optional[StrictBool] = None

    def changes(self) -> dict:
        """Fields that were sent with a usable value."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class UserRead(ApiModel):
    id: int
    email: str
    name: str
    is_admin: bool
    send_notifications: bool
    research_participant: bool
    email_hash: str
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
