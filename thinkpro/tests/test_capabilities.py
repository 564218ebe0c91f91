"""
Tests for role to capability resolution and actor scope checks.
"""

import pytest

from thinkpro.common.auth.directory import InMemoryIdentityDirectory
from thinkpro.common.auth.user import Actor, Capability, UserRole, resolve_capabilities
from thinkpro.common.error_handling import AuthorizationError


class TestResolveCapabilities:
    def test_superadmin_has_every_staff_capability(self):
        caps = resolve_capabilities(UserRole.SUPERADMIN)

        assert Capability.MANAGE_ASSESSMENTS in caps
        assert Capability.VIEW_ALL_SCHOOLS in caps
        assert Capability.TAKE_ASSESSMENTS not in caps

    def test_leadmentor_without_permissions_only_views(self):
        caps = resolve_capabilities(UserRole.LEADMENTOR, [])

        assert caps == frozenset({Capability.VIEW_ASSESSMENTS, Capability.VIEW_ALL_SCHOOLS})

    def test_leadmentor_permissions_grant_capabilities(self):
        caps = resolve_capabilities(UserRole.LEADMENTOR, ["create_assessments", "unrelated"])

        assert Capability.CREATE_ASSESSMENTS in caps
        assert Capability.MANAGE_ASSESSMENTS not in caps

    def test_mentor_creates_but_does_not_manage(self):
        caps = resolve_capabilities(UserRole.MENTOR)

        assert Capability.CREATE_ASSESSMENTS in caps
        assert Capability.MANAGE_ASSESSMENTS not in caps

    def test_schooladmin_manages_but_does_not_create(self):
        caps = resolve_capabilities(UserRole.SCHOOLADMIN)

        assert Capability.MANAGE_ASSESSMENTS in caps
        assert Capability.CREATE_ASSESSMENTS not in caps

    def test_student_only_takes_assessments(self):
        assert resolve_capabilities(UserRole.STUDENT) == frozenset({Capability.TAKE_ASSESSMENTS})

    def test_guest_has_nothing(self):
        assert resolve_capabilities(UserRole.GUEST) == frozenset()


class TestActor:
    def test_require_raises_with_required_capability(self, student):
        with pytest.raises(AuthorizationError) as exc_info:
            student.require(Capability.VIEW_ASSESSMENTS)

        assert exc_info.value.details == {"required": "view_assessments"}
        assert exc_info.value.status_code == 403

    def test_scope_checks(self, schooladmin, superadmin, mentor):
        assert schooladmin.can_see_school("school-1")
        assert not schooladmin.can_see_school("school-2")
        assert schooladmin.can_manage_school("school-1")
        assert superadmin.can_see_school("anything")
        assert not mentor.can_manage_school("school-1")

    def test_from_dict_defaults_student_scope_to_enrolment(self):
        actor = Actor.from_dict({
            "id": "user-9",
            "role": "student",
            "student": {"student_id": "stu-9", "school_id": "school-1", "grade": "Grade 5", "section": " "},
        })

        assert actor.school_ids == ["school-1"]
        assert actor.student.section is None
        assert actor.has_capability(Capability.TAKE_ASSESSMENTS)


class TestIdentityDirectory:
    def test_from_yaml(self, tmp_path):
        fixture = tmp_path / "users.yaml"
        fixture.write_text(
            "users:\n"
            "  - id: mentor-1\n"
            "    role: mentor\n"
            "    school_ids: [school-1]\n"
            "  - id: lead-1\n"
            "    role: leadmentor\n"
            "    permissions: [manage_assessments]\n"
        )

        directory = InMemoryIdentityDirectory.from_yaml(str(fixture))

        assert len(directory.get_all()) == 2
        lead = [a for a in directory.get_all() if a.id == "lead-1"][0]
        assert Capability.MANAGE_ASSESSMENTS in lead.capabilities

    def test_missing_file_gives_empty_directory(self, tmp_path):
        directory = InMemoryIdentityDirectory.from_yaml(str(tmp_path / "missing.yaml"))

        assert directory.get_all() == []
