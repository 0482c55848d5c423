# =============================================================================
# tests/test_queries.py - User and Todo Store Tests
# =============================================================================
# Each test runs against its own in-memory SQLite database (see conftest.py),
# with foreign keys enforced.
# =============================================================================

import datetime
import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from src.db import queries
from src.db.errors import (
    ConflictError,
    ConstraintError,
    ErrorKind,
    InvalidInputError,
    ReferentialError,
    StoreError,
    classify_integrity_error,
    store_error_from,
)
from src.db.models import Todo, User

EMAIL = "test@test.com"
PASSWORD = "password123"
LONG_AGO = datetime.datetime(2000, 1, 1, tzinfo=datetime.timezone.utc)


def _naive_utc(value):
    """SQLite returns naive values; compare everything as naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


@pytest.fixture
def user_id(db, hasher):
    return queries.insert_user(db, EMAIL, PASSWORD, hasher=hasher)


# =============================================================================
# User Store Tests
# =============================================================================

class TestUserStore:
    """Test insert/lookup of users."""

    def test_insert_user_returns_id(self, db, hasher):
        user_id = queries.insert_user(db, EMAIL, PASSWORD, hasher=hasher)

        assert isinstance(user_id, str)
        assert uuid.UUID(user_id)

    def test_stored_hash_verifies(self, db, hasher, user_id):
        user = queries.get_user_by_email(db, EMAIL)

        assert user is not None
        assert user.id == user_id
        assert user.password_hash != PASSWORD
        assert hasher.verify(PASSWORD, user.password_hash)
        assert user.created_at is not None
        assert user.updated_at is not None

    def test_duplicate_email_conflicts(self, db, hasher, user_id):
        original = queries.get_user_by_email(db, EMAIL)
        original_hash = original.password_hash

        with pytest.raises(ConflictError) as exc_info:
            queries.insert_user(db, EMAIL, "another-password", hasher=hasher)

        assert exc_info.value.kind == ErrorKind.UNIQUE_VIOLATION
        db.expire_all()
        user = queries.get_user_by_email(db, EMAIL)
        assert user.id == user_id
        assert user.password_hash == original_hash
        assert db.execute(select(func.count()).select_from(User)).scalar_one() == 1

    def test_empty_password_rejected(self, db, hasher):
        with pytest.raises(InvalidInputError):
            queries.insert_user(db, EMAIL, "", hasher=hasher)

        assert queries.get_user_by_email(db, EMAIL) is None

    @pytest.mark.parametrize("age", [-1, 121])
    def test_age_out_of_range_rejected(self, db, hasher, age):
        with pytest.raises(InvalidInputError):
            queries.insert_user(db, EMAIL, PASSWORD, age=age, hasher=hasher)

    def test_age_bounds_accepted(self, db, hasher):
        queries.insert_user(db, "young@test.com", PASSWORD, age=0, hasher=hasher)
        queries.insert_user(db, "old@test.com", PASSWORD, age=120, hasher=hasher)

        assert queries.get_user_by_email(db, "young@test.com").age == 0
        assert queries.get_user_by_email(db, "old@test.com").age == 120

    def test_age_check_constraint_backstops_store(self, db, hasher):
        db.add(User(email=EMAIL, password_hash=hasher.hash(PASSWORD), age=200))

        with pytest.raises(IntegrityError) as exc_info:
            db.commit()
        db.rollback()

        assert isinstance(store_error_from(exc_info.value), ConstraintError)

    def test_get_user_by_email_is_case_sensitive(self, db, user_id):
        assert queries.get_user_by_email(db, "TEST@test.com") is None

    def test_get_user_by_email_missing(self, db):
        assert queries.get_user_by_email(db, "nobody@test.com") is None

    def test_get_user_by_id_hides_hash(self, db, user_id):
        user = queries.get_user_by_id(db, user_id)

        assert user.id == user_id
        assert user.email == EMAIL
        assert set(user._mapping.keys()) == {"id", "email"}

    def test_get_user_by_id_missing(self, db):
        assert queries.get_user_by_id(db, str(uuid.uuid4())) is None

    def test_delete_user_cascades_to_todos(self, db, user_id):
        queries.insert_todo(db, user_id, "Todo 1")
        queries.insert_todo(db, user_id, "Todo 2")

        assert queries.delete_user(db, user_id) is True

        db.expire_all()
        assert queries.get_user_by_id(db, user_id) is None
        assert db.execute(select(func.count()).select_from(Todo)).scalar_one() == 0

    def test_delete_user_missing(self, db):
        assert queries.delete_user(db, str(uuid.uuid4())) is False


# =============================================================================
# Todo Store Tests
# =============================================================================

class TestInsertTodo:
    """Test creating todos."""

    def test_insert_todo(self, db, user_id):
        todo = queries.insert_todo(db, user_id, "Test Todo", "This is a test todo", False)

        assert todo.id is not None
        assert todo.user_id == user_id
        assert todo.title == "Test Todo"
        assert todo.description == "This is a test todo"
        assert todo.completed is False
        assert todo.created_at is not None
        assert todo.updated_at is not None

    def test_new_todo_has_one_timestamp(self, db, user_id):
        todo = queries.insert_todo(db, user_id, "Test Todo")

        assert todo.created_at == todo.updated_at

    def test_defaults(self, db, user_id):
        todo = queries.insert_todo(db, user_id, "Only a title")

        assert todo.description is None
        assert todo.completed is False

    def test_unknown_user_is_referential_error(self, db):
        with pytest.raises(ReferentialError) as exc_info:
            queries.insert_todo(db, str(uuid.uuid4()), "Orphan")

        assert exc_info.value.kind == ErrorKind.FOREIGN_KEY_VIOLATION

    def test_empty_title_rejected(self, db, user_id):
        with pytest.raises(InvalidInputError):
            queries.insert_todo(db, user_id, "")

        assert queries.get_todos_by_user_id(db, user_id) == []


class TestGetTodos:
    """Test listing todos."""

    def test_newest_first(self, db, user_id):
        first = queries.insert_todo(db, user_id, "Test Todo 1", completed=False)
        second = queries.insert_todo(db, user_id, "Test Todo 2", completed=True)

        todos = queries.get_todos_by_user_id(db, user_id)

        assert [t.id for t in todos] == [second.id, first.id]
        assert todos[0].completed is True
        assert todos[1].completed is False

    def test_repeated_reads_are_identical(self, db, user_id):
        queries.insert_todo(db, user_id, "A")
        queries.insert_todo(db, user_id, "B")

        first = [(t.id, t.title, t.updated_at) for t in queries.get_todos_by_user_id(db, user_id)]
        second = [(t.id, t.title, t.updated_at) for t in queries.get_todos_by_user_id(db, user_id)]

        assert first == second

    def test_no_todos(self, db, user_id):
        assert queries.get_todos_by_user_id(db, user_id) == []

    def test_unknown_user(self, db):
        assert queries.get_todos_by_user_id(db, str(uuid.uuid4())) == []

    def test_only_own_todos(self, db, hasher, user_id):
        other_id = queries.insert_user(db, "other@test.com", PASSWORD, hasher=hasher)
        queries.insert_todo(db, other_id, "Not mine")
        mine = queries.insert_todo(db, user_id, "Mine")

        assert [t.id for t in queries.get_todos_by_user_id(db, user_id)] == [mine.id]


class TestUpdateTodo:
    """Test partial, ownership-scoped updates."""

    def test_partial_update(self, db, user_id):
        todo = queries.insert_todo(db, user_id, "Title", "Description", False)
        before_created_at = todo.created_at

        updated = queries.update_todo(db, todo.id, user_id, {"title": "x"})

        assert updated.title == "x"
        assert updated.description == "Description"
        assert updated.completed is False
        assert updated.created_at == before_created_at

    def test_update_moves_updated_at_forward(self, db, user_id):
        todo = queries.insert_todo(db, user_id, "Title")
        todo.updated_at = LONG_AGO
        db.commit()

        updated = queries.update_todo(db, todo.id, user_id, {"completed": True})

        assert _naive_utc(updated.updated_at) > _naive_utc(LONG_AGO)
        assert _naive_utc(updated.updated_at) >= _naive_utc(updated.created_at)

    def test_update_all_fields(self, db, user_id):
        todo = queries.insert_todo(db, user_id, "Title")

        updated = queries.update_todo(
            db, todo.id, user_id, {"title": "New", "description": "Now described", "completed": True}
        )

        assert (updated.title, updated.description, updated.completed) == ("New", "Now described", True)

    def test_foreign_todo_is_not_found(self, db, hasher, user_id):
        other_id = queries.insert_user(db, "other@test.com", PASSWORD, hasher=hasher)
        theirs = queries.insert_todo(db, other_id, "Their todo", "Theirs", False)

        assert queries.update_todo(db, theirs.id, user_id, {"title": "hijacked", "completed": True}) is None

        db.expire_all()
        untouched = queries.get_todo(db, theirs.id, other_id)
        assert untouched.title == "Their todo"
        assert untouched.completed is False

    def test_missing_todo_is_not_found(self, db, user_id):
        assert queries.update_todo(db, str(uuid.uuid4()), user_id, {"title": "x"}) is None

    def test_empty_title_rejected(self, db, user_id):
        todo = queries.insert_todo(db, user_id, "Title")

        with pytest.raises(InvalidInputError):
            queries.update_todo(db, todo.id, user_id, {"title": ""})

    def test_unknown_field_rejected(self, db, user_id):
        todo = queries.insert_todo(db, user_id, "Title")

        with pytest.raises(InvalidInputError):
            queries.update_todo(db, todo.id, user_id, {"user_id": str(uuid.uuid4())})


class TestDeleteTodo:
    """Test deleting todos."""

    def test_delete_returns_prior_state(self, db, user_id):
        todo = queries.insert_todo(db, user_id, "Doomed", "Soon gone", True)
        todo_id = todo.id

        deleted = queries.delete_todo(db, todo_id)

        assert deleted.id == todo_id
        assert deleted.title == "Doomed"
        assert deleted.description == "Soon gone"
        assert queries.get_todos_by_user_id(db, user_id) == []

    def test_delete_missing(self, db):
        assert queries.delete_todo(db, str(uuid.uuid4())) is None

    def test_scoped_delete_ignores_foreign_todo(self, db, hasher, user_id):
        other_id = queries.insert_user(db, "other@test.com", PASSWORD, hasher=hasher)
        theirs = queries.insert_todo(db, other_id, "Their todo")

        assert queries.delete_todo(db, theirs.id, user_id=user_id) is None
        assert len(queries.get_todos_by_user_id(db, other_id)) == 1


# =============================================================================
# Error Classification Tests
# =============================================================================

class _FakeDriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


class TestErrorClassification:
    """Test mapping driver integrity errors to typed store errors."""

    @pytest.mark.parametrize("sqlstate, kind", [
        ("23505", ErrorKind.UNIQUE_VIOLATION),
        ("23503", ErrorKind.FOREIGN_KEY_VIOLATION),
        ("23514", ErrorKind.CHECK_VIOLATION),
    ])
    def test_sqlstate(self, sqlstate, kind):
        exc = IntegrityError("INSERT ...", {}, _FakeDriverError("boom", sqlstate))

        assert classify_integrity_error(exc) == kind

    @pytest.mark.parametrize("message, error_cls", [
        ("UNIQUE constraint failed: users.email", ConflictError),
        ("FOREIGN KEY constraint failed", ReferentialError),
        ("CHECK constraint failed: ck_todos_title_not_empty", ConstraintError),
    ])
    def test_sqlite_messages(self, message, error_cls):
        exc = IntegrityError("INSERT ...", {}, _FakeDriverError(message))

        assert type(store_error_from(exc)) is error_cls

    def test_unknown_is_other(self):
        exc = IntegrityError("INSERT ...", {}, _FakeDriverError("NOT NULL constraint failed: todos.title"))

        error = store_error_from(exc)
        assert type(error) is StoreError
        assert error.kind == ErrorKind.OTHER
