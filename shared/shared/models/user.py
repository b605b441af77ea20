from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shared.constants import TRAINER_ROLES, Role


class CurrentUser(BaseModel):
    """User context from JWT; used by all routers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: UUID
    email: str = ""
    roles: list[Role] = Field(default_factory=list)

    @property
    def is_trainer(self) -> bool:
        return any(role in TRAINER_ROLES for role in self.roles)
