"""Credential store: persisted account records."""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

import asyncpg
import structlog

from school_portal.database import get_pool
from school_portal.errors import AccountExistsError
from school_portal.models.account import Account, Role
from school_portal.models.student import StudentStats

logger = structlog.get_logger(__name__)

ACCOUNT_COLUMNS = """
    id, name, email, age, role, is_active, is_temporary_password,
    must_change_password, password_changed_at, created_at, updated_at
"""


def _to_account(row: Any) -> Account:
    return Account(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        age=row["age"],
        role=Role(row["role"]),
        is_active=row["is_active"],
        is_temporary_password=row["is_temporary_password"],
        must_change_password=row["must_change_password"],
        password_changed_at=row["password_changed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class AccountStore:
    """Account persistence. Each method touches at most one row per statement."""

    async def create_account(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: Role = Role.STUDENT,
        age: Optional[int] = None,
        is_temporary_password: bool = False,
        must_change_password: bool = False,
    ) -> Account:
        """Insert a new active account.

        Args:
            name: Display name
            email: Email address (stored lower-cased)
            password_hash: bcrypt hash of the password
            role: Account role
            age: Optional age
            is_temporary_password: Password was generated by the system
            must_change_password: Client should force a password change

        Returns:
            Created Account

        Raises:
            AccountExistsError: If the email is already taken
        """
        account_id = uuid4()
        now = datetime.now(timezone.utc)
        email = email.strip().lower()

        pool = await get_pool()

        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO users (
                        id, name, email, age, password_hash, role, is_active,
                        is_temporary_password, must_change_password, created_at, updated_at
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, TRUE, $7, $8, $9, $10)
                    """,
                    account_id,
                    name,
                    email,
                    age,
                    password_hash,
                    role.value,
                    is_temporary_password,
                    must_change_password,
                    now,
                    now,
                )
        except asyncpg.UniqueViolationError:
            logger.warning("account_email_conflict", email=email)
            raise AccountExistsError()

        logger.info(
            "account_created",
            account_id=str(account_id),
            email=email,
            role=role.value,
        )

        return Account(
            id=account_id,
            name=name,
            email=email,
            age=age,
            role=role,
            is_active=True,
            is_temporary_password=is_temporary_password,
            must_change_password=must_change_password,
            created_at=now,
            updated_at=now,
        )

    async def get_by_email(self, email: str) -> Optional[tuple[Account, str]]:
        """Get an account and its password hash by email (case-insensitive).

        Returns:
            Tuple of (Account, password_hash) or None if not found
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {ACCOUNT_COLUMNS}, password_hash
                FROM users
                WHERE LOWER(email) = LOWER($1)
                """,
                email.strip(),
            )

        if row is None:
            return None
        return _to_account(row), row["password_hash"]

    async def get_credentials(self, account_id: UUID) -> Optional[tuple[Account, str]]:
        """Get an account and its password hash by id."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {ACCOUNT_COLUMNS}, password_hash FROM users WHERE id = $1",
                account_id,
            )

        if row is None:
            return None
        return _to_account(row), row["password_hash"]

    async def get_by_id(self, account_id: UUID) -> Optional[Account]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {ACCOUNT_COLUMNS} FROM users WHERE id = $1",
                account_id,
            )

        return _to_account(row) if row is not None else None

    async def email_exists(self, email: str) -> bool:
        pool = await get_pool()

        async with pool.acquire() as conn:
            found = await conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM users WHERE LOWER(email) = LOWER($1))",
                email.strip(),
            )

        return bool(found)

    async def list_accounts(self) -> list[Account]:
        """Return all accounts, newest first."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {ACCOUNT_COLUMNS} FROM users ORDER BY created_at DESC"
            )

        return [_to_account(row) for row in rows]

    async def set_refresh_token_hash(
        self, account_id: UUID, token_hash: Optional[str]
    ) -> bool:
        """Store (or clear, with None) the refresh token digest of an account.

        Returns:
            True if the account exists
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                "UPDATE users SET refresh_token_hash = $1 WHERE id = $2",
                token_hash,
                account_id,
            )

        return result == "UPDATE 1"

    async def rotate_refresh_token_hash(
        self, old_hash: str, new_hash: str
    ) -> Optional[Account]:
        """Replace a stored refresh token digest with a new one.

        The match and the overwrite happen in one statement, so a digest
        can be rotated at most once.

        Returns:
            The owning Account, or None if no account holds ``old_hash``
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE users
                SET refresh_token_hash = $1
                WHERE refresh_token_hash = $2
                RETURNING {ACCOUNT_COLUMNS}
                """,
                new_hash,
                old_hash,
            )

        return _to_account(row) if row is not None else None

    async def update_password(self, account_id: UUID, password_hash: str) -> bool:
        """Replace the password hash, clear the temporary/must-change flags
        and stamp the change time.

        Returns:
            True if the account exists
        """
        now = datetime.now(timezone.utc)
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE users
                SET password_hash = $1,
                    is_temporary_password = FALSE,
                    must_change_password = FALSE,
                    password_changed_at = $2,
                    updated_at = $2
                WHERE id = $3
                """,
                password_hash,
                now,
                account_id,
            )

        updated = result == "UPDATE 1"
        if updated:
            logger.info("account_password_changed", account_id=str(account_id))
        return updated

    async def update_account(
        self,
        account_id: UUID,
        name: Optional[str] = None,
        age: Optional[int] = None,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
    ) -> Optional[Account]:
        """Update account fields that are not None.

        Deactivating an account also clears its refresh token.

        Returns:
            Updated Account, or None if the account was not found
        """
        set_clauses = []
        params: list[Any] = []

        def add(column: str, value: Any) -> None:
            params.append(value)
            set_clauses.append(f"{column} = ${len(params)}")

        if name is not None:
            add("name", name)
        if age is not None:
            add("age", age)
        if role is not None:
            add("role", role.value)
        if is_active is not None:
            add("is_active", is_active)
            if not is_active:
                set_clauses.append("refresh_token_hash = NULL")

        if not set_clauses:
            return await self.get_by_id(account_id)

        add("updated_at", datetime.now(timezone.utc))
        params.append(account_id)

        query = f"""
            UPDATE users
            SET {', '.join(set_clauses)}
            WHERE id = ${len(params)}
            RETURNING {ACCOUNT_COLUMNS}
        """

        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(query, *params)

        if row is None:
            return None

        logger.info(
            "account_updated",
            account_id=str(account_id),
            fields_updated=[c.split(" = ")[0] for c in set_clauses if "updated_at" not in c],
        )
        return _to_account(row)

    async def delete_account(self, account_id: UUID) -> bool:
        """Hard-delete an account.

        Returns:
            True if the account was deleted, False if not found
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute("DELETE FROM users WHERE id = $1", account_id)

        deleted = result == "DELETE 1"

        if deleted:
            logger.info("account_deleted", account_id=str(account_id))
        else:
            logger.warning("account_delete_not_found", account_id=str(account_id))

        return deleted

    async def student_stats(self) -> StudentStats:
        """Count student accounts by state."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT
                    COUNT(*) AS total,
                    COUNT(*) FILTER (WHERE is_active) AS active,
                    COUNT(*) FILTER (WHERE is_temporary_password) AS temporary,
                    COUNT(*) FILTER (WHERE must_change_password) AS must_change
                FROM users
                WHERE role = $1
                """,
                Role.STUDENT.value,
            )

        total = row["total"]
        active = row["active"]
        return StudentStats(
            total_students=total,
            active_students=active,
            inactive_students=total - active,
            students_with_temporary_password=row["temporary"],
            students_must_change_password=row["must_change"],
        )
