import os

from passlib.context import CryptContext
from passlib.exc import UnknownHashError
from dotenv import load_dotenv

from src.db.errors import InvalidInputError

load_dotenv()

# === Hashing cost parameters from env ===
ARGON2_TIME_COST = int(os.environ.get("ARGON2_TIME_COST", 3))
ARGON2_MEMORY_COST = int(os.environ.get("ARGON2_MEMORY_COST", 65536))
ARGON2_PARALLELISM = int(os.environ.get("ARGON2_PARALLELISM", 4))


# PUBLIC_INTERFACE
class PasswordHasher:
    """
    Salted, memory-hard one-way hashing of plaintext passwords (argon2id).

    Cost parameters are tunable; digests produced with older parameters still
    verify, and needs_rehash() reports when they should be upgraded.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self.context = CryptContext(
            schemes=["argon2"],
            deprecated="auto",
            argon2__type="ID",
            argon2__time_cost=time_cost,
            argon2__memory_cost=memory_cost,
            argon2__parallelism=parallelism,
        )

    def hash(self, plaintext: str) -> str:
        """Hash the plain password."""
        if not plaintext:
            raise InvalidInputError("password must not be empty")
        return self.context.hash(plaintext)

    def verify(self, plaintext: str, digest: str) -> bool:
        """Verify password against stored hash. Unrecognised digests never match."""
        if not plaintext or not digest:
            return False
        try:
            return self.context.verify(plaintext, digest)
        except (UnknownHashError, ValueError):
            return False

    def needs_rehash(self, digest: str) -> bool:
        return self.context.needs_update(digest)


password_hasher = PasswordHasher(
    time_cost=ARGON2_TIME_COST,
    memory_cost=ARGON2_MEMORY_COST,
    parallelism=ARGON2_PARALLELISM,
)
