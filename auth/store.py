"""
auth/store.py -- SQLAlchemy Core persistence for user accounts (CredentialStore).

Pattern: Repository + Data Mapper. CredentialStore is the repository;
_row_to_user is the mapper. Route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is enforced by the UNIQUE constraint on users.email, not by
  a read-then-insert check. Two concurrent signups for the same address both
  reach INSERT; the database accepts one and raises IntegrityError for the
  other, which create() turns into DuplicateEmail.

  bcrypt runs outside any connection scope. Hashing is deliberately slow, and
  holding a pooled connection for its duration would starve other requests.

  verify() always runs bcrypt, against a dummy hash when the email is unknown,
  so response time does not reveal whether an account exists. Unknown email,
  wrong password and deactivated account all raise the same
  InvalidCredentials; the real reason only goes to the server log.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.db import now_iso, users
from auth.errors import DuplicateEmail, InvalidCredentials, ValidationError
from auth.models import Principal, User
from auth.tokens import hash_password, verify_password
from auth.validation import normalize_email, validate_signup

logger = logging.getLogger("sessionauth.auth")


class CredentialStore:
    """Repository for User accounts and their password credentials.

    Usage:
        store = CredentialStore(engine)
        user = store.create("Alice Doe", "alice@example.com", "Passw0rd1")
        principal = store.verify("alice@example.com", "Passw0rd1")
    """

    def __init__(self, engine: Engine, bcrypt_rounds: int = 12) -> None:
        self.engine = engine
        self.bcrypt_rounds = bcrypt_rounds
        # Timing equalization target for unknown emails. Hashed at the same
        # cost as real credentials so both paths take the same time.
        self._dummy_hash = hash_password("sessionauth_timing_dummy", rounds=bcrypt_rounds)

    # ------------------------------------------------------------------
    # Signup
    # ------------------------------------------------------------------

    def create(self, name: str, email: str, password: str) -> User:
        """Validate input, derive the credential and insert a new active user.

        Raises:
            ValidationError: name, email or password fails the policy.
            DuplicateEmail: the normalized email is already registered.
        """
        errors = validate_signup(name, email, password)
        if errors:
            raise ValidationError(details=errors)

        hashed = hash_password(password, rounds=self.bcrypt_rounds)
        now = now_iso()
        user = User(
            id=str(uuid.uuid4()),
            name=name.strip(),
            email=normalize_email(email),
            hashed_password=hashed,
            created_at=now,
            updated_at=now,
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    users.insert().values(
                        id=user.id,
                        name=user.name,
                        email=user.email,
                        hashed_password=user.hashed_password,
                        created_at=user.created_at,
                        updated_at=user.updated_at,
                        is_active=True,
                    )
                )
        except IntegrityError as exc:
            raise DuplicateEmail() from exc

        logger.info("User registered: %s", user.id)
        return user

    # ------------------------------------------------------------------
    # Signin
    # ------------------------------------------------------------------

    def verify(self, email: str, password: str) -> Principal:
        """Check password against the stored credential and stamp last_login.

        Raises InvalidCredentials for every failure mode.
        """
        user = self.get_by_email(email)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            verify_password(password, self._dummy_hash)
            logger.info("Signin rejected: unknown email")
            raise InvalidCredentials()
        if not verify_password(password, user.hashed_password):
            logger.info("Signin rejected: bad password for user %s", user.id)
            raise InvalidCredentials()
        if not user.is_active:
            logger.info("Signin rejected: user %s is deactivated", user.id)
            raise InvalidCredentials()

        self._update_last_login(user.id)
        return Principal(id=user.id, name=user.name, email=user.email)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by normalized email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def deactivate(self, user_id: str) -> bool:
        """Soft-delete an account. Returns True if a row was updated.

        Existing sessions stay in the table; the account simply cannot sign in
        again. Live tokens keep working until logout or expiry.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                users.update().where(users.c.id == user_id).values(is_active=False, updated_at=now_iso())
            )
        return result.rowcount > 0

    def _update_last_login(self, user_id: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(users.update().where(users.c.id == user_id).values(last_login=now_iso()))


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_login=row.last_login,
        is_active=bool(row.is_active),
    )
