from __future__ import annotations

from datetime import date

import mysql.connector
import pytest
from mysql.connector import errorcode

from src.site_ops.site_ops.assignments.mysql_assignment_repository import MySQLAssignmentRepository
from src.site_ops.site_ops.core.enums import AssignmentRole, AssignmentType
from src.site_ops.site_ops.core.exceptions import ValidationError


class FailingCursor:
    def __init__(self, error):
        self.error = error
        self.lastrowid = None

    def execute(self, sql, params=()):
        raise self.error

    def close(self):
        pass


class FakeConnection:
    def __init__(self, error):
        self.error = error
        self.rolled_back = False

    def cursor(self, dictionary=True):
        return FailingCursor(self.error)

    def commit(self):
        raise AssertionError("failed insert must not commit")

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass


class FakeConnectionFactory:
    def __init__(self, error):
        self.conn = FakeConnection(error)

    def connect(self):
        return self.conn


def _create(repo):
    return repo.create(
        site_id=1,
        user_id=7,
        assignment_type=AssignmentType.PERMANENT,
        role=AssignmentRole.WORKER,
        assigned_date=date(2025, 3, 1),
        end_date=None,
        notes=None,
    )


def test_second_active_assignment_is_a_validation_error():
    factory = FakeConnectionFactory(
        mysql.connector.IntegrityError(msg="Duplicate entry '1-7'", errno=errorcode.ER_DUP_ENTRY)
    )

    with pytest.raises(ValidationError, match="already assigned"):
        _create(MySQLAssignmentRepository(factory))
    assert factory.conn.rolled_back


def test_other_integrity_errors_propagate():
    factory = FakeConnectionFactory(
        mysql.connector.IntegrityError(msg="fk_assign_user", errno=errorcode.ER_NO_REFERENCED_ROW_2)
    )

    with pytest.raises(mysql.connector.IntegrityError):
        _create(MySQLAssignmentRepository(factory))
