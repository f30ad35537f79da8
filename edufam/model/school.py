from .base import WithTimestamps
from .id import SchoolID


class School(WithTimestamps):
    school_id: SchoolID
    name: str
    slug: str
