"""
Newsletter enrolment.

Registered customers are added to the newsletter list as leads. The action
runs as a follow-up with its own database session, so it never shares a
transaction with the registration that triggered it.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.models.enums import SubscriberSegment
from storefront.models.subscriber import Subscriber
from storefront.repositories.subscriber_repository import SubscriberRepository

logger = logging.getLogger(__name__)


class SubscriberService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.subscriber_repo = SubscriberRepository(session)

    async def subscribe_lead(self, email: str) -> Subscriber:
        """
        Add an email as a lead, or return the existing entry unchanged.

        The display name defaults to the local part of the address.
        """
        email = email.strip().lower()
        existing = await self.subscriber_repo.get_by_email(email)
        if existing is not None:
            logger.debug(f"Subscriber already present: {email}")
            return existing

        subscriber = await self.subscriber_repo.create(
            email=email,
            name=email.split("@")[0],
            segment=SubscriberSegment.LEAD,
        )
        await self.session.commit()
        logger.info(f"Subscribed new lead: {email}")
        return subscriber


async def subscribe_lead(session_factory: async_sessionmaker[AsyncSession], email: str) -> None:
    """Follow-up action: enrol a newly registered customer as a lead."""
    async with session_factory() as session:
        await SubscriberService(session).subscribe_lead(email)
