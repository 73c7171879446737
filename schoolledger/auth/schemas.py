from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated caller, decoded from the access token.
    tenant_id is the school every request is scoped to.
    """

    id: UUID
    tenant_id: UUID
    role: str
    email: Optional[str] = None

    @property
    def actor_tag(self) -> str:
        """Value recorded in created_by / performed_by columns."""
        return self.email or str(self.id)
