"""Account and identity models."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either form on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Role(str, Enum):
    """Account roles."""

    STUDENT = "student"
    ADMIN = "admin"


class Account(CamelModel):
    """A holder of credentials. The password hash never leaves the store."""

    id: UUID
    name: str
    email: str
    age: Optional[int] = None
    role: Role = Role.STUDENT
    is_active: bool = True
    is_temporary_password: bool = False
    must_change_password: bool = False
    password_changed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class Identity(BaseModel):
    """Identity asserted by a verified access token."""

    account_id: UUID
    email: str
    role: Role

    @classmethod
    def from_account(cls, account: Account) -> "Identity":
        return cls(account_id=account.id, email=account.email, role=account.role)
