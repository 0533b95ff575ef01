"""Admin API request schemas.

All schemas use ConfigDict(extra="forbid") to reject unexpected fields.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict


class UpdateRoleRequest(BaseModel):
    """Request body for PATCH /admin/users/{user_id}/role."""

    model_config = ConfigDict(extra="forbid")

    role: Literal["user", "admin"]
