"""API request/response schemas for order endpoints."""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from orderpay.common.serialization import dumps


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class OrderCreateRequest(CamelModel):
    """Order creation payload accepted from clients."""

    order_number: str = Field(min_length=1)
    amount: Decimal = Field(ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        return value.upper()


class OrderResponse(CamelModel):
    """Order representation returned to clients and stored for replays."""

    id: str
    order_number: str
    amount: Decimal
    currency: str
    status: str
    created_at: datetime

    def to_document(self) -> dict:
        """camelCase dict ready for `serialization.dumps`; `amount` stays a `Decimal`."""

        document = self.model_dump(mode="json", by_alias=True)
        document["amount"] = self.amount
        return document

    def to_json(self) -> str:
        return dumps(self.to_document())

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite drops tzinfo on read; stored values are always UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
