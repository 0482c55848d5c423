"""
User and todo stores.

Every function takes an explicit SQLAlchemy session. Integrity failures are
rolled back and re-raised as typed StoreError subclasses (see src.db.errors).
Todo reads and writes are scoped by owner: a todo that belongs to someone else
looks exactly like one that does not exist.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.auth.passwords import PasswordHasher, password_hasher
from src.db.errors import InvalidInputError, store_error_from
from src.db.models import User, Todo, utcnow

logger = logging.getLogger(__name__)

MIN_AGE = 0
MAX_AGE = 120
UPDATABLE_TODO_FIELDS = ("title", "description", "completed")


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise store_error_from(e) from e


# === Users ===

# PUBLIC_INTERFACE
def insert_user(
    db: Session,
    email: str,
    password: str,
    age: Optional[int] = None,
    hasher: PasswordHasher = password_hasher,
) -> str:
    """
    Create a new user and return its id.

    Raises InvalidInputError for an empty password or an age outside 0-120,
    and ConflictError when the email is already registered.
    """
    if age is not None and not MIN_AGE <= age <= MAX_AGE:
        raise InvalidInputError(f"age must be between {MIN_AGE} and {MAX_AGE}")

    now = utcnow()
    user = User(email=email, password_hash=hasher.hash(password), age=age, created_at=now, updated_at=now)
    db.add(user)
    _commit(db)
    logger.info(f"Created user {user.id}")
    return user.id


# PUBLIC_INTERFACE
def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get a user by email address (exact match)."""
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


# PUBLIC_INTERFACE
def get_user_by_id(db: Session, user_id: str) -> Optional[Row]:
    """Get (id, email) for a user. The password hash is never selected."""
    return db.execute(select(User.id, User.email).where(User.id == user_id)).first()


# PUBLIC_INTERFACE
def update_password_hash(db: Session, user: User, password_hash: str) -> None:
    """Replace a user's stored digest (used when hashing costs change)."""
    user.password_hash = password_hash
    _commit(db)


# PUBLIC_INTERFACE
def delete_user(db: Session, user_id: str) -> bool:
    """Remove a user; their todos go with them. Returns False if absent."""
    user = db.get(User, user_id)
    if user is None:
        return False
    db.delete(user)
    _commit(db)
    logger.info(f"Deleted user {user_id}")
    return True


# === Todos ===

def _check_title(title: Any) -> None:
    if not isinstance(title, str) or not title:
        raise InvalidInputError("title must not be empty")


# PUBLIC_INTERFACE
def insert_todo(
    db: Session,
    user_id: str,
    title: str,
    description: Optional[str] = None,
    completed: Optional[bool] = None,
) -> Todo:
    """
    Create a todo owned by user_id.

    Raises InvalidInputError for an empty title and ReferentialError when
    user_id does not match an existing user.
    """
    _check_title(title)
    now = utcnow()
    todo = Todo(
        user_id=user_id,
        title=title,
        description=description,
        completed=bool(completed) if completed is not None else False,
        created_at=now,
        updated_at=now,
    )
    db.add(todo)
    _commit(db)
    db.refresh(todo)
    return todo


# PUBLIC_INTERFACE
def get_todos_by_user_id(db: Session, user_id: str) -> List[Todo]:
    """List a user's todos, newest first. Unknown users simply have none."""
    query = select(Todo).where(Todo.user_id == user_id).order_by(Todo.created_at.desc())
    return list(db.execute(query).scalars().all())


# PUBLIC_INTERFACE
def get_todo(db: Session, todo_id: str, user_id: str) -> Optional[Todo]:
    """Get a single todo if, and only if, user_id owns it."""
    query = select(Todo).where(Todo.id == todo_id, Todo.user_id == user_id)
    return db.execute(query).scalar_one_or_none()


# PUBLIC_INTERFACE
def update_todo(db: Session, todo_id: str, user_id: str, fields: Dict[str, Any]) -> Optional[Todo]:
    """
    Apply the provided fields (title/description/completed) to a todo owned by
    user_id and refresh updated_at. Returns None when no row matches both ids.
    """
    unknown = set(fields) - set(UPDATABLE_TODO_FIELDS)
    if unknown:
        raise InvalidInputError(f"cannot update fields: {', '.join(sorted(unknown))}")
    if "title" in fields:
        _check_title(fields["title"])
    if "completed" in fields and fields["completed"] is None:
        raise InvalidInputError("completed must be a boolean")

    todo = get_todo(db, todo_id, user_id)
    if todo is None:
        return None

    for name, value in fields.items():
        setattr(todo, name, value)
    todo.updated_at = utcnow()
    _commit(db)
    db.refresh(todo)
    return todo


# PUBLIC_INTERFACE
def delete_todo(db: Session, todo_id: str, user_id: Optional[str] = None) -> Optional[Todo]:
    """
    Remove a todo and return its state before deletion, or None if absent.
    When user_id is given only a todo owned by that user can be removed.
    """
    query = select(Todo).where(Todo.id == todo_id)
    if user_id is not None:
        query = query.where(Todo.user_id == user_id)
    todo = db.execute(query).scalar_one_or_none()
    if todo is None:
        return None

    db.delete(todo)
    _commit(db)
    return todo
