"""Authentication service with opaque database-backed sessions."""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.config import get_settings
from cnc_admin.models.admin_user import AdminUser, AdminSession
from cnc_admin.services.exceptions import InvalidCredentials, SessionInvalid, UserInactive
from cnc_admin.services.passwords import hash_password, verify_password


settings = get_settings()
logger = logging.getLogger(__name__)


def generate_session_token() -> str:
    """64 hex characters of CSPRNG output."""
    return secrets.token_hex(32)


class AuthService:
    """Service for login, logout and session verification."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def authenticate(self, username: str, password: str) -> AdminUser:
        """Check credentials for an active user.

        A legacy SHA-256 hash that verifies is replaced with bcrypt before
        returning, so each account migrates on its first successful login.
        """
        result = await self.db.execute(
            select(AdminUser).where(AdminUser.username == username)
        )
        user = result.scalar_one_or_none()

        if not user or not user.is_active:
            raise InvalidCredentials("Invalid credentials")

        check = verify_password(password, user.password_hash)
        if not check.valid:
            raise InvalidCredentials("Invalid credentials")

        if check.needs_upgrade:
            logger.info(f"Migrating user {user.username} password to bcrypt")
            user.password_hash = hash_password(password)
            await self.db.flush()

        return user

    async def create_session(
        self,
        user: AdminUser,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AdminSession:
        """Open a fixed-duration session and stamp last_login. Caller commits."""
        now = datetime.utcnow()
        session = AdminSession(
            user=user,
            session_token=generate_session_token(),
            ip_address=ip_address or "unknown",
            user_agent=user_agent or "unknown",
            created_at=now,
            expires_at=now + timedelta(minutes=settings.session_ttl_minutes),
        )
        self.db.add(session)
        user.last_login = now
        await self.db.flush()

        logger.info(
            f"Session created for user {user.username}, token {session.session_token[:8]}..., "
            f"expires {session.expires_at.isoformat()}"
        )
        return session

    async def get_session(self, token: str) -> Optional[AdminSession]:
        """Session for a token if it has no expiry or expires strictly in the future."""
        result = await self.db.execute(
            select(AdminSession)
            .where(AdminSession.session_token == token)
            .where(or_(
                AdminSession.expires_at.is_(None),
                AdminSession.expires_at > datetime.utcnow(),
            ))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def verify_session(self, token: Optional[str]) -> AdminUser:
        """Resolve a bearer token to its active user. Never extends the expiry."""
        if not token:
            raise SessionInvalid("Your session has expired. Please sign in again.")

        session = await self.get_session(token)
        if session is None:
            raise SessionInvalid("Your session has expired. Please sign in again.")

        user = session.user
        if user is None:
            raise SessionInvalid("User not found")
        if not user.is_active:
            raise UserInactive("User account is inactive")
        return user

    async def logout(self, token: str) -> Optional[str]:
        """Delete the session row. Returns the owning user id when it existed."""
        result = await self.db.execute(
            select(AdminSession.admin_user_id).where(AdminSession.session_token == token)
        )
        user_id = result.scalar_one_or_none()

        await self.db.execute(
            delete(AdminSession).where(AdminSession.session_token == token)
        )
        return user_id

