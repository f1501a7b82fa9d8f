"""
Repository for single-use tokens (password reset, email verification).

Lookups are by SHA-256 digest. Claiming a token is a conditional UPDATE whose
affected-row count tells the caller whether it won: of two concurrent
consumers, only one sees a row change.
"""

from datetime import datetime
from typing import Generic, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.tokens import EmailVerificationToken, PasswordResetToken
from storefront.repositories.base import BaseRepository

TokenType = TypeVar("TokenType", PasswordResetToken, EmailVerificationToken)


class OneTimeTokenRepository(BaseRepository[TokenType], Generic[TokenType]):
    """
    Data access for one token table.

    Usage:
        repo = OneTimeTokenRepository(PasswordResetToken, session)
        token = await repo.get_by_hash(hash_token(raw))
    """

    def __init__(self, model: type[TokenType], session: AsyncSession):
        super().__init__(model, session)

    async def create(self, user_id: int, token_hash: str, expires_at: datetime) -> TokenType:
        return await self.add(
            self.model(user_id=user_id, token_hash=token_hash, expires_at=expires_at, used=False)
        )

    async def get_by_hash(self, token_hash: str) -> TokenType | None:
        result = await self.session.execute(
            select(self.model)
            .where(self.model.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def delete_for_user(self, user_id: int) -> int:
        """Delete every token of a user. Returns the number of rows removed."""
        result = await self.session.execute(
            delete(self.model).where(self.model.user_id == user_id)
        )
        return result.rowcount

    async def mark_used(self, token_id: int, now: datetime) -> bool:
        """
        Claim a token.

        ``UPDATE ... SET used = true WHERE id = ? AND used = false AND expires_at > now``

        Returns:
            True only for the caller whose update changed the row
        """
        result = await self.session.execute(
            update(self.model)
            .where(
                self.model.id == token_id,
                self.model.used.is_(False),
                self.model.expires_at > now,
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
