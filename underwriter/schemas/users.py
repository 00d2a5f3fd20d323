from datetime import datetime

from pydantic import BaseModel, ConfigDict

from underwriter.core.permissions import UserRole


class UserDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole
    is_active: bool
    created_at: datetime


class UserRoleUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    role: UserRole
