"""Subscriber repository for the newsletter list."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.enums import SubscriberSegment
from storefront.models.subscriber import Subscriber
from storefront.repositories.base import BaseRepository


class SubscriberRepository(BaseRepository[Subscriber]):
    def __init__(self, session: AsyncSession):
        super().__init__(Subscriber, session)

    async def get_by_email(self, email: str) -> Subscriber | None:
        result = await self.session.execute(
            select(Subscriber).where(Subscriber.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        email: str,
        name: str | None,
        segment: SubscriberSegment,
    ) -> Subscriber:
        return await self.add(
            Subscriber(email=email.strip().lower(), name=name, segment=segment)
        )
