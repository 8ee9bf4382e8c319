from uuid import UUID

from pydantic import BaseModel, ConfigDict

from shared.constants import Role


class CurrentUser(BaseModel):
    """User snapshot carried in the access token; used by all services."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: UUID
    email: str
    username: str = ""
    role: Role = Role.USER
    is_account_verified: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
