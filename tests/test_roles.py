"""Tests for roles module."""

import pytest

from aws_installer.roles import RoleManager, UnknownRoleError


def test_expand_single_role():
    """Test a single role is prefixed with the profile namespace."""
    assert RoleManager.expand("base") == "zulip_ops::profile::base"


def test_expand_role_list():
    """Test a comma-separated list expands each role."""
    assert RoleManager.expand("a,b") == "zulip_ops::profile::a,zulip_ops::profile::b"


def test_validate_known_roles(checkout):
    """Test validate returns the role names when all manifests exist."""
    manager = RoleManager(checkout)
    assert manager.validate("prod_app_frontend,postgresql") == ["prod_app_frontend", "postgresql"]


def test_validate_unknown_role(checkout):
    """Test an unknown role raises with the user-facing message."""
    manager = RoleManager(checkout)

    with pytest.raises(UnknownRoleError, match="Unknown zulip_ops role 'nope'!") as excinfo:
        manager.validate("a,nope")

    assert excinfo.value.role == "nope"


def test_validate_empty_item(checkout):
    """Test an empty list item is treated as an unknown role."""
    with pytest.raises(UnknownRoleError):
        RoleManager(checkout).validate("a,,b")


def test_validate_rejects_path_traversal(checkout):
    """Test role names cannot point outside the profile directory."""
    (checkout / "puppet" / "zulip_ops" / "manifests" / "evil.pp").write_text("")

    with pytest.raises(UnknownRoleError):
        RoleManager(checkout).validate("../evil")


def test_manifest_path(tmp_path):
    """Test manifest_path layout under the checkout."""
    path = RoleManager(tmp_path).manifest_path("base")
    assert path == tmp_path / "puppet" / "zulip_ops" / "manifests" / "profile" / "base.pp"
