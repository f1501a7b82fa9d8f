"""Newsletter subscriber model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from storefront.models.base import Base, UTCDateTime, utcnow
from storefront.models.enums import SubscriberSegment, SubscriberStatus


class Subscriber(Base):
    """
    Newsletter list entry.

    Customers are added as ``lead`` when they register; the segment moves to
    ``customer`` after a first purchase (outside this service).
    """

    __tablename__ = "subscribers"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    status: Mapped[SubscriberStatus] = mapped_column(
        Enum(
            SubscriberStatus,
            name="subscriber_status",
            native_enum=False,
            length=20,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=SubscriberStatus.ACTIVE,
    )

    segment: Mapped[SubscriberSegment] = mapped_column(
        Enum(
            SubscriberSegment,
            name="subscriber_segment",
            native_enum=False,
            length=20,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=SubscriberSegment.LEAD,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )
