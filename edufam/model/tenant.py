import pydantic as p

from .base import BaseModel
from .id import ClassID, SchoolID, StudentID, UserID
from .user import Role


class TenantContext(BaseModel):
    """Who is acting, and inside which school.

    Built from the verified bearer token on every request and discarded with
    it. Teachers carry the classes they are assigned to and parents the
    students they are guardians of.
    """

    model_config = p.ConfigDict(frozen=True)

    user_id: UserID
    role: Role
    school_id: SchoolID | None = None
    class_ids: frozenset[ClassID] = frozenset()
    student_ids: frozenset[StudentID] = frozenset()

    @property
    def is_system_admin(self) -> bool:
        return self.role is Role.SystemAdmin
