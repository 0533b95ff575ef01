"""Admin endpoints.

Endpoints:
- PATCH /admin/users/{user_id}/role: promote or demote a user

Role changes take effect at the user's next login: existing sessions keep
the role claim they were issued with.
"""

import uuid

from fastapi import APIRouter

from dashboard.api.deps import AdminOnly, DbSession
from dashboard.core.errors import NotFoundError
from dashboard.core.responses import DataResponse
from dashboard.repositories.user_repository import UserRepository
from dashboard.schemas.admin import UpdateRoleRequest

router = APIRouter()


@router.patch("/users/{user_id}/role")
async def update_user_role(
    user_id: uuid.UUID,
    body: UpdateRoleRequest,
    _admin: AdminOnly,
    db: DbSession,
) -> DataResponse[dict]:
    """Set a user's role."""
    user = await UserRepository.set_role(db, user_id, role=body.role)
    if user is None:
        raise NotFoundError("User", str(user_id))
    await db.commit()
    return DataResponse(data={"id": str(user.id), "role": user.role})
