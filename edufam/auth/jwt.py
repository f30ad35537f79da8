"""Bearer token verification.

Tokens are issued by the identity provider; the claims name the user, their
role and the school they act in, plus the classes (teachers) or students
(parents) they are tied to.
"""

from __future__ import annotations

import datetime
import logging
import typing as t

import jwt
import pydantic as p

from edufam.grading.errors import TenantScopeError, TenantScopeReason
from edufam.model import ClassID, Role, SchoolID, StudentID, TenantContext, UserID

logger = logging.getLogger(__name__)


class TokenPayload(t.TypedDict, total=False):
    """JWT token payload structure."""

    sub: t.Required[str]  # user_id
    role: t.Required[str]
    school: str | None  # school_id, absent for system admins
    classes: list[str]  # class_ids a teacher is assigned to
    children: list[str]  # student_ids a parent is guardian of
    exp: t.Required[int]
    iat: t.Required[int]


class TokenData(t.NamedTuple):
    """Decoded token data."""

    user_id: UserID
    role: Role
    school: str | None
    class_ids: frozenset[ClassID]
    student_ids: frozenset[StudentID]
    expires_at: datetime.datetime
    issued_at: datetime.datetime

    def to_context(self) -> TenantContext:
        """The tenant context for a request carrying this token.

        The school claim is kept verbatim until here so that a malformed one is
        reported as a tenant scope failure rather than a bad token.
        """
        school_id: SchoolID | None = None
        if self.school is not None:
            try:
                school_id = SchoolID(self.school)
            except ValueError as e:
                raise TenantScopeError(TenantScopeReason.MalformedSchoolId, repr(self.school)) from e
        return TenantContext(
            user_id=self.user_id,
            role=self.role,
            school_id=school_id,
            class_ids=self.class_ids,
            student_ids=self.student_ids,
        )


class JWTManager(object):
    """Validates bearer tokens; can also mint them for local development and tests."""

    def __init__(
        self,
        secret_key: p.Secret[str],
        algorithm: str = "HS256",
        issuer: str | None = None,
        audience: str | None = None,
        leeway_seconds: int = 0,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._issuer = issuer
        self._audience = audience
        self._leeway = leeway_seconds

    @property
    def secret_key(self) -> str:
        return self._secret_key.get_secret_value()

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def create_access_token(
        self,
        user_id: UserID,
        role: Role,
        school_id: SchoolID | None = None,
        *,
        class_ids: t.Iterable[ClassID] = (),
        student_ids: t.Iterable[StudentID] = (),
        expires_delta: datetime.timedelta = datetime.timedelta(minutes=30),
    ) -> str:
        now = datetime.datetime.now(datetime.UTC)
        payload: dict[str, t.Any] = {
            "sub": str(user_id),
            "role": role.value,
            "classes": sorted(str(c) for c in class_ids),
            "children": sorted(str(s) for s in student_ids),
            "exp": int((now + expires_delta).timestamp()),
            "iat": int(now.timestamp()),
        }
        if school_id is not None:
            payload["school"] = str(school_id)
        if self._issuer is not None:
            payload["iss"] = self._issuer
        if self._audience is not None:
            payload["aud"] = self._audience

        return jwt.encode(payload, self.secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenData | None:
        """Decode and validate a token.

        Returns:
            TokenData if valid, None if invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                audience=self._audience,
                leeway=self._leeway,
                options={"require": ["sub", "role", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("rejected expired token")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug("rejected invalid token", extra={"reason": str(e)})
            return None

        try:
            return TokenData(
                user_id=UserID(payload["sub"]),
                role=Role(payload["role"]),
                school=payload.get("school"),
                class_ids=frozenset(ClassID(c) for c in payload.get("classes") or ()),
                student_ids=frozenset(StudentID(s) for s in payload.get("children") or ()),
                expires_at=datetime.datetime.fromtimestamp(payload["exp"], tz=datetime.UTC),
                issued_at=datetime.datetime.fromtimestamp(payload["iat"], tz=datetime.UTC),
            )
        except (ValueError, TypeError) as e:
            logger.warning("rejected token with malformed claims", extra={"reason": str(e)})
            return None
