from pydantic import BaseModel, Field
from typing import Optional


class DeviceBindRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)


class DeviceBindingOut(BaseModel):
    institution_id: int
    branch_id: Optional[int] = None
    institution_name: Optional[str] = None


class DeviceBindResponse(DeviceBindingOut):
    token: str
