from uuid import UUID
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class UserResponse(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("id")
    def serialize_id(self, v: UUID, _info):
        return str(v)


class TokenResponse(BaseModel):
    access_token: str = Field(..., description="JWT access token")
    token_type: Literal["bearer"] = Field(..., description="Type of the token")
    user_id: str = Field(..., description="ID of the authenticated operator")
