import typing as t

from .base import WithCtime
from .id import AuditEntryID, SchoolID, UserID
from .user import Role


class AuditEntry(WithCtime):
    entry_id: AuditEntryID
    school_id: SchoolID | None = None
    user_id: UserID
    role: Role
    action: str
    target: str
    old_value: dict[str, t.Any] | None = None
    new_value: dict[str, t.Any] | None = None
