import enum

from pydantic import EmailStr

from .base import WithTimestamps
from .id import SchoolID, UserID


class Role(enum.Enum):
    Teacher = "teacher"
    Principal = "principal"
    SchoolOwner = "school_owner"
    FinanceOfficer = "finance_officer"
    SystemAdmin = "system_admin"
    Parent = "parent"
    Unknown = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "Role":
        # the identity provider still issues the legacy name for platform admins
        if value == "edufam_admin":
            return cls.SystemAdmin
        return cls.Unknown


class User(WithTimestamps):
    user_id: UserID
    email: EmailStr
    name: str
    role: Role
    school_id: SchoolID | None = None
