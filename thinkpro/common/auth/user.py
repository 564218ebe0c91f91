"""
Actor Models

This module defines the authenticated actor handed to the assessment core,
the roles it can hold and the capabilities those roles resolve to.

Capabilities are resolved once, when the actor is built, and every
operation asserts the capability it needs instead of branching on roles.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from thinkpro.common.error_handling import AuthorizationError


class UserRole(enum.Enum):
    """User roles known to the platform."""

    SUPERADMIN = "superadmin"
    LEADMENTOR = "leadmentor"
    SCHOOLADMIN = "schooladmin"
    MENTOR = "mentor"
    STUDENT = "student"
    GUEST = "guest"


class Capability(enum.Enum):
    """Assessment capabilities an actor may hold."""

    VIEW_ASSESSMENTS = "view_assessments"
    CREATE_ASSESSMENTS = "create_assessments"
    MANAGE_ASSESSMENTS = "manage_assessments"
    VIEW_ALL_SCHOOLS = "view_all_schools"
    TAKE_ASSESSMENTS = "take_assessments"


# Lead mentor permission strings that grant a capability
LEADMENTOR_PERMISSIONS = {
    "create_assessments": Capability.CREATE_ASSESSMENTS,
    "manage_assessments": Capability.MANAGE_ASSESSMENTS,
}


@dataclass
class StudentProfile:
    """
    The cohort coordinates of a student.

    Attributes:
        student_id: Student record identifier
        school_id: School the student is enrolled in
        grade: Grade level label, e.g. "Grade 7"
        section: Section label, or None when the school does not track sections
    """
    student_id: str
    school_id: str
    grade: str
    section: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "studentId": self.student_id,
            "schoolId": self.school_id,
            "grade": self.grade,
            "section": self.section,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StudentProfile':
        section = data.get("section")
        return cls(
            student_id=str(data["student_id"]),
            school_id=str(data["school_id"]),
            grade=data["grade"],
            section=section.strip() or None if isinstance(section, str) else section,
        )


def resolve_capabilities(
    role: UserRole,
    permissions: Optional[List[str]] = None
) -> FrozenSet[Capability]:
    """
    Map a role (plus lead mentor permissions) to its capability set.

    Args:
        role: The actor's role
        permissions: Permission strings assigned to a lead mentor

    Returns:
        The capabilities the actor holds
    """
    if role == UserRole.SUPERADMIN:
        return frozenset({
            Capability.VIEW_ASSESSMENTS,
            Capability.CREATE_ASSESSMENTS,
            Capability.MANAGE_ASSESSMENTS,
            Capability.VIEW_ALL_SCHOOLS,
        })

    if role == UserRole.LEADMENTOR:
        granted = {Capability.VIEW_ASSESSMENTS, Capability.VIEW_ALL_SCHOOLS}
        for permission in permissions or []:
            capability = LEADMENTOR_PERMISSIONS.get(permission)
            if capability:
                granted.add(capability)
        return frozenset(granted)

    if role == UserRole.SCHOOLADMIN:
        return frozenset({Capability.VIEW_ASSESSMENTS, Capability.MANAGE_ASSESSMENTS})

    if role == UserRole.MENTOR:
        return frozenset({Capability.VIEW_ASSESSMENTS, Capability.CREATE_ASSESSMENTS})

    if role == UserRole.STUDENT:
        return frozenset({Capability.TAKE_ASSESSMENTS})

    return frozenset()


@dataclass
class Actor:
    """
    The authenticated caller of an assessment operation.

    Attributes:
        id: User identifier
        role: The user's role
        school_ids: Schools the actor is tied to, in assignment order
        permissions: Lead mentor permission strings
        student: Cohort data, present for students only
        name: Display name
        capabilities: Resolved capability set
    """
    id: str
    role: UserRole
    school_ids: List[str] = field(default_factory=list)
    permissions: List[str] = field(default_factory=list)
    student: Optional[StudentProfile] = None
    name: Optional[str] = None
    capabilities: FrozenSet[Capability] = field(init=False)

    def __post_init__(self):
        self.capabilities = resolve_capabilities(self.role, self.permissions)

    @property
    def is_privileged(self) -> bool:
        """Whether the actor sees every school."""
        return Capability.VIEW_ALL_SCHOOLS in self.capabilities

    def has_capability(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability, message: Optional[str] = None) -> None:
        """
        Assert that the actor holds a capability.

        Raises:
            AuthorizationError: If the capability is missing
        """
        if capability not in self.capabilities:
            raise AuthorizationError(
                message or "Access denied",
                details={"required": capability.value}
            )

    def can_see_school(self, school_id: Optional[str]) -> bool:
        return self.is_privileged or (school_id is not None and school_id in self.school_ids)

    def can_manage_school(self, school_id: Optional[str]) -> bool:
        return self.has_capability(Capability.MANAGE_ASSESSMENTS) and self.can_see_school(school_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "schoolIds": list(self.school_ids),
            "permissions": list(self.permissions),
            "student": self.student.to_dict() if self.student else None,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Actor':
        """
        Create an Actor from a plain mapping (e.g. a YAML identity fixture).

        Args:
            data: Mapping with ``id``, ``role`` and optional scope fields

        Returns:
            An Actor instance
        """
        student_data = data.get("student")
        student = StudentProfile.from_dict(student_data) if student_data else None
        school_ids = [str(s) for s in data.get("school_ids") or []]
        if student and not school_ids:
            school_ids = [student.school_id]

        return cls(
            id=str(data["id"]),
            role=UserRole(data.get("role", UserRole.GUEST.value)),
            school_ids=school_ids,
            permissions=list(data.get("permissions") or []),
            student=student,
            name=data.get("name"),
        )
