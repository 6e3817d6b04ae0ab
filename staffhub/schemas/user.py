from pydantic import BaseModel, ConfigDict
from typing import Optional
import datetime

from staffhub.models.enums import UserRole


class UserBase(BaseModel):
    email: str
    name: str
    role: UserRole


class UserCreate(UserBase):
    employee_code: Optional[str] = None
    reporting_to_id: Optional[int] = None


class UserSummary(UserBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


class User(UserBase):
    id: int
    employee_code: Optional[str] = None
    reporting_to_id: Optional[int] = None
    is_active: bool
    presence_status: str
    created_at: Optional[datetime.datetime] = None

    model_config = ConfigDict(from_attributes=True)
