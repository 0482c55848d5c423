from sqlalchemy import Column, String, ForeignKey, DateTime, Integer, Boolean, CheckConstraint
from sqlalchemy.orm import relationship, declarative_base
import datetime
import uuid

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# PUBLIC_INTERFACE
class User(Base):
    """
    Database model for a user.
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("age >= 0 AND age <= 120", name="ck_users_age_range"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(256), unique=True, index=True, nullable=False)
    password_hash = Column(String(500), nullable=False)
    age = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    todos = relationship("Todo", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"


# PUBLIC_INTERFACE
class Todo(Base):
    """
    Database model for a todo. Rows are deleted with their owning user.
    """
    __tablename__ = "todos"
    __table_args__ = (
        CheckConstraint("length(title) > 0", name="ck_todos_title_not_empty"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(String(1000), nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="todos")

    def __repr__(self) -> str:
        return f"<Todo id={self.id} user_id={self.user_id} title={self.title!r}>"
