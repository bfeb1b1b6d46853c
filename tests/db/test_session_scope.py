"""
Tests for session_scope transaction handling.

Verifies store errors are translated into kernel errors and that every
failure path rolls back.
"""

import pytest
from sqlalchemy import func, select, text

from procurement_kernel.db.engine import session_scope
from procurement_kernel.exceptions import (
    ConcurrentModificationError,
    DependencyFailureError,
    ValidationError,
)
from procurement_kernel.models.notification import UserModel


def user_count(session_factory) -> int:
    with session_factory() as s:
        return s.execute(select(func.count()).select_from(UserModel)).scalar_one()


class TestSessionScope:

    def test_commit_on_success(self, session_factory):
        with session_scope(session_factory) as session:
            session.add(UserModel(username="new.user"))
        assert user_count(session_factory) == 1

    def test_integrity_error_is_conflict(self, session_factory, users, captured_logs):
        with pytest.raises(ConcurrentModificationError):
            with session_scope(session_factory) as session:
                session.add(UserModel(username="extra.user"))
                session.add(UserModel(username=users[0]))

        assert user_count(session_factory) == len(users)
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())

    def test_not_null_violation_is_not_conflict(self, session_factory, captured_logs):
        with pytest.raises(DependencyFailureError) as exc_info:
            with session_scope(session_factory) as session:
                session.add(UserModel(username=None))

        assert not isinstance(exc_info.value, ConcurrentModificationError)
        assert user_count(session_factory) == 0
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())

    def test_store_error_is_dependency_failure(self, session_factory):
        with pytest.raises(DependencyFailureError):
            with session_scope(session_factory) as session:
                session.execute(text("SELECT * FROM no_such_table"))

    def test_kernel_error_passes_through(self, session_factory):
        with pytest.raises(ValidationError):
            with session_scope(session_factory) as session:
                session.add(UserModel(username="half.written"))
                session.flush()
                raise ValidationError("rejected mid-operation")
        assert user_count(session_factory) == 0
