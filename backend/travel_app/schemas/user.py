from pydantic import BaseModel
from typing import Optional
from ..models.user import UserRole


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    phone_number: Optional[str] = None
    role: UserRole

    model_config = {"from_attributes": True}
