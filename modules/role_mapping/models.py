from pydantic import Field

from core.models.base import MongoModel


class RoleMapping(MongoModel):
    guild_id: int = Field(..., description="Guild id")
    code: str = Field(..., description="Invite or vanity code")
    role_id: int = Field(..., description="Role granted to members joining through the code")
