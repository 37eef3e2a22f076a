"""
Tests for the enforcement guard.

Tests cover:
- assert_permission raising PermissionDenied
- PermissionDenied fields and serialization
- Role gates
- The authorize decorator (sync and async)
- Subject context binding
- The process-wide enforcer and its environment configuration
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from roleguard import (
    Enforcer,
    MissingInstanceError,
    PermissionDenied,
    PolicyConfigurationError,
    Role,
    RoleguardConfig,
    RoleguardError,
    Subject,
    assert_permission,
    build_default_matrix,
    evaluate,
    get_current_subject,
    get_default_enforcer,
    get_default_evaluator,
    reset_default_enforcer,
    subject_context,
)
from tests.factories import make_notification, make_post


def write_policy(path: Path, **overrides: str) -> Path:
    """Write the reference policy document with ``ROLE__kind__action=token`` overrides."""
    document = build_default_matrix().to_document()
    for key, token in overrides.items():
        role, kind, action = key.split("__")
        document["roles"][role][kind][action] = token
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


class TestAssertPermission:
    """Tests for Enforcer.assert_permission."""

    def test_allowed_returns_none(self, enforcer: Enforcer, student: Subject, own_post):
        assert enforcer.assert_permission(student, "posts", "update", own_post) is None

    def test_denied_raises(self, enforcer: Enforcer, student: Subject, other_post):
        with pytest.raises(PermissionDenied) as exc_info:
            enforcer.assert_permission(student, "posts", "update", other_post)

        error = exc_info.value
        assert error.subject_id == "u1"
        assert error.kind == "posts"
        assert error.action == "update"
        assert error.reason == "Rule 'owner' denies STUDENT to update posts"
        assert error.message == "User u1 not permitted to update posts"

    def test_denial_is_forbidden(self, enforcer: Enforcer, guest: Subject):
        with pytest.raises(PermissionDenied) as exc_info:
            enforcer.assert_permission(guest, "posts", "publish")
        assert exc_info.value.status_code == 403
        assert isinstance(exc_info.value, RoleguardError)

    def test_denial_serializes(self, enforcer: Enforcer, moderator: Subject):
        with pytest.raises(PermissionDenied) as exc_info:
            enforcer.assert_permission(moderator, "notifications", "read", make_notification("u2"))
        payload = exc_info.value.to_dict()
        assert payload["error_type"] == "PermissionDenied"
        assert payload["details"]["subject_id"] == "m1"
        assert payload["details"]["kind"] == "notifications"

    def test_denial_is_logged(self, enforcer: Enforcer, student: Subject, other_post, caplog):
        with caplog.at_level("INFO", logger="roleguard.core"):
            with pytest.raises(PermissionDenied):
                enforcer.assert_permission(student, "posts", "delete", other_post)
        assert any("Permission denied" in r.message for r in caplog.records)

    def test_moderator_asymmetry(self, enforcer: Enforcer, moderator: Subject, other_post):
        enforcer.assert_permission(moderator, "posts", "delete", other_post)
        with pytest.raises(PermissionDenied):
            enforcer.assert_permission(moderator, "posts", "update", other_post)

    def test_check_does_not_raise(self, enforcer: Enforcer, student: Subject, other_post):
        decision = enforcer.check(student, "posts", "update", other_post)
        assert decision.allowed is False
        assert enforcer.can(student, "posts", "update", other_post) is False

    def test_missing_instance_is_denied(self, enforcer: Enforcer, student: Subject):
        with pytest.raises(PermissionDenied) as exc_info:
            enforcer.assert_permission(student, "posts", "delete")
        assert "needs a resource instance" in exc_info.value.reason


class TestRequireRole:
    """Tests for Enforcer.require_role."""

    def test_role_granted(self, enforcer: Enforcer, moderator: Subject):
        enforcer.require_role(moderator, Role.ADMIN, Role.MODERATOR)

    def test_role_denied(self, enforcer: Enforcer, student: Subject):
        with pytest.raises(PermissionDenied) as exc_info:
            enforcer.require_role(student, Role.ADMIN, Role.MODERATOR)
        assert exc_info.value.reason == "Requires one of roles: ADMIN, MODERATOR"

    def test_no_subject(self, enforcer: Enforcer):
        with pytest.raises(PermissionDenied) as exc_info:
            enforcer.require_role(None, Role.ADMIN)
        assert exc_info.value.subject_id == "anonymous"

    def test_plain_string_roles(self, enforcer: Enforcer, admin: Subject):
        enforcer.require_role(admin, "ADMIN")


class TestAuthorizeDecorator:
    """Tests for the authorize decorator."""

    def test_sync_allowed(self, enforcer: Enforcer, student: Subject, own_post):
        @enforcer.authorize("posts", "update", instance_param="post")
        def update_post(post: dict, subject: Subject, title: str) -> dict:
            return {**post, "title": title}

        result = update_post(own_post, student, "New")
        assert result["title"] == "New"

    def test_sync_denied_never_runs(self, enforcer: Enforcer, student: Subject, other_post):
        calls = []

        @enforcer.authorize("posts", "delete", instance_param="post")
        def delete_post(post: dict, subject: Subject) -> None:
            calls.append(post["id"])

        with pytest.raises(PermissionDenied):
            delete_post(other_post, subject=student)
        assert calls == []

    def test_instance_free_action(self, enforcer: Enforcer, guest: Subject):
        @enforcer.authorize("posts", "create")
        def create_post(subject: Subject, title: str) -> dict:
            return {"title": title, "authorId": subject.id}

        assert create_post(guest, "Hello") == {"title": "Hello", "authorId": "guest-1"}

    def test_custom_subject_param(self, enforcer: Enforcer, admin: Subject, other_post):
        @enforcer.authorize("posts", "update", instance_param="post", subject_param="actor")
        def update_post(actor: Subject, post: dict) -> str:
            return post["id"]

        assert update_post(actor=admin, post=other_post) == other_post["id"]

    def test_subject_from_context(self, enforcer: Enforcer, student: Subject, own_post):
        @enforcer.authorize("posts", "delete", instance_param="post")
        def delete_post(post: dict) -> str:
            return post["id"]

        with subject_context(student):
            assert delete_post(own_post) == own_post["id"]

    def test_no_subject_anywhere(self, enforcer: Enforcer):
        @enforcer.authorize("posts", "create")
        def create_post(title: str) -> str:
            return title

        with pytest.raises(PermissionDenied) as exc_info:
            create_post("Hello")
        assert exc_info.value.subject_id == "anonymous"

    def test_preserves_metadata(self, enforcer: Enforcer):
        @enforcer.authorize("posts", "create")
        def create_post(subject: Subject) -> None:
            """Create a post."""

        assert create_post.__name__ == "create_post"
        assert create_post.__doc__ == "Create a post."

    @pytest.mark.asyncio
    async def test_async_allowed(self, enforcer: Enforcer, admin: Subject):
        notification = make_notification(admin.id)

        @enforcer.authorize("notifications", "update", instance_param="notification")
        async def mark_read(notification: dict, subject: Subject) -> dict:
            return {**notification, "isRead": True}

        result = await mark_read(notification, admin)
        assert result["isRead"] is True

    @pytest.mark.asyncio
    async def test_async_denied(self, enforcer: Enforcer, admin: Subject):
        @enforcer.authorize("notifications", "delete", instance_param="notification")
        async def delete_notification(notification: dict, subject: Subject) -> None:
            raise AssertionError("must not run")

        with pytest.raises(PermissionDenied):
            await delete_notification(make_notification("u2"), admin)


class TestSubjectContext:
    """Tests for subject_context."""

    def test_binds_and_restores(self, student: Subject, admin: Subject):
        assert get_current_subject() is None
        with subject_context(student):
            assert get_current_subject() is student
            with subject_context(admin):
                assert get_current_subject() is admin
            assert get_current_subject() is student
        assert get_current_subject() is None

    def test_restores_after_error(self, student: Subject):
        with pytest.raises(RuntimeError):
            with subject_context(student):
                raise RuntimeError("boom")
        assert get_current_subject() is None


class TestDefaultEnforcer:
    """Tests for the process-wide enforcer."""

    def test_shared_instance(self):
        assert get_default_enforcer() is get_default_enforcer()

    def test_uses_reference_matrix(self):
        assert get_default_enforcer().matrix == build_default_matrix()

    def test_module_level_assert_permission(self, student: Subject):
        assert_permission(student, "posts", "update", make_post("u1"))
        with pytest.raises(PermissionDenied):
            assert_permission(student, "posts", "update", make_post("u2"))

    def test_policy_path_from_env(self, tmp_path: Path, guest: Subject, monkeypatch):
        path = write_policy(tmp_path / "policy.json", GUEST__posts__create="deny")
        monkeypatch.setenv("ROLEGUARD_POLICY_PATH", str(path))

        with pytest.raises(PermissionDenied):
            assert_permission(guest, "posts", "create")

    def test_evaluate_and_assert_permission_share_policy(self, tmp_path: Path, guest: Subject, monkeypatch):
        path = write_policy(tmp_path / "policy.json", GUEST__posts__create="deny")
        monkeypatch.setenv("ROLEGUARD_POLICY_PATH", str(path))

        assert evaluate(guest, "posts", "create") is False
        with pytest.raises(PermissionDenied):
            assert_permission(guest, "posts", "create")
        assert get_default_enforcer().evaluator is get_default_evaluator()

    def test_reset_drops_both_defaults(self, tmp_path: Path, guest: Subject, monkeypatch):
        assert evaluate(guest, "posts", "create") is True

        path = write_policy(tmp_path / "policy.json", GUEST__posts__create="deny")
        monkeypatch.setenv("ROLEGUARD_POLICY_PATH", str(path))
        reset_default_enforcer()

        assert evaluate(guest, "posts", "create") is False
        assert get_default_enforcer().can(guest, "posts", "create") is False

    def test_strict_instances_from_env(self, student: Subject, monkeypatch):
        monkeypatch.setenv("ROLEGUARD_STRICT_INSTANCES", "true")
        with pytest.raises(MissingInstanceError):
            assert_permission(student, "posts", "update")

    def test_bad_policy_file_fails_loading(self, tmp_path: Path, monkeypatch):
        path = write_policy(tmp_path / "policy.json", STUDENT__posts__update="sometimes")
        monkeypatch.setenv("ROLEGUARD_POLICY_PATH", str(path))
        with pytest.raises(PolicyConfigurationError):
            get_default_enforcer()

    def test_explicit_config(self, tmp_path: Path, student: Subject):
        path = write_policy(tmp_path / "policy.json", STUDENT__posts__report="deny")
        enforcer = Enforcer(config=RoleguardConfig(policy_path=path))
        assert enforcer.can(student, "posts", "report", make_post("u2")) is False
