"""Payment webhook audit records."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from orderpay.common.db import Base
from orderpay.services.orders.models import utcnow


class PaymentEvent(Base):
    """Raw, signature-verified webhook call as received.

    Not linked to `orders` by foreign key: events referencing unknown orders
    are still kept.
    """

    __tablename__ = "payment_events"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    order_number: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    event_type: Mapped[str | None] = mapped_column(String, nullable=True)
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    raw_body: Mapped[str] = mapped_column(Text)
    signature: Mapped[str] = mapped_column(String)
