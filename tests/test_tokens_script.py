# tests/test_tokens_script.py
"""Tests for the developer token script."""

import pytest

from office_chat.core.security import decode_access_token
from office_chat.models import UserRole
from office_chat.scripts.tokens import add_user, build_parser, find_user, issue_token


def test_find_user_by_email_or_id(db_session, test_user):
    assert find_user(db_session, test_user.email).id == test_user.id
    assert find_user(db_session, test_user.id).id == test_user.id
    assert find_user(db_session, "nobody@example.com") is None


def test_issue_token_for_active_user(db_session, test_user):
    token = issue_token(db_session, test_user.email)
    assert decode_access_token(token) == test_user.id


def test_issue_token_refuses_inactive_user(db_session, inactive_user):
    with pytest.raises(LookupError):
        issue_token(db_session, inactive_user.email)


def test_add_user_is_idempotent_by_email(db_session):
    first = add_user(db_session, "Dana Cruz", "dana@example.com", UserRole.ADMIN)
    second = add_user(db_session, "Someone Else", "dana@example.com", UserRole.GUEST_CLIENT)
    assert second.id == first.id
    assert second.role is UserRole.ADMIN


def test_parser_defaults_role():
    args = build_parser().parse_args(["add-user", "Dana Cruz", "dana@example.com"])
    assert args.role == UserRole.GUEST_CLIENT.value
