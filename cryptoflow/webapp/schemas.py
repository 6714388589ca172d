"""
Pydantic models for request bodies in the web application.

Accept the camelCase field names used by the web client as well as the
snake_case attribute names.
"""

from decimal import Decimal
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from cryptoflow.orders.service import CreateOrderRequest
from cryptoflow.orders.status import OrderStatus


class QuoteRequest(BaseModel):
    """Price an order without storing it."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    from_currency: str = Field(..., alias="fromCurrency", min_length=1)
    to_currency: str = Field(..., alias="toCurrency", min_length=1)
    from_amount: Decimal = Field(..., alias="fromAmount", gt=0)
    rate_type: Literal["fixed", "float"] = Field("float", alias="rateType")

    @field_validator("from_currency", "to_currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().lower()


class CreateOrderBody(QuoteRequest):
    """Order creation request."""

    recipient_address: Optional[str] = Field(None, alias="recipientAddress")
    card_number: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("cardNumber", "cardDetails", "card_number"),
    )
    contact_email: Optional[str] = Field(None, alias="contactEmail")
    user_id: Optional[str] = Field(None, alias="userId")

    @field_validator("recipient_address", "card_number", "contact_email")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace; empty strings become None."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    def to_request(self) -> CreateOrderRequest:
        return CreateOrderRequest(
            from_currency=self.from_currency,
            to_currency=self.to_currency,
            from_amount=self.from_amount,
            rate_type=self.rate_type,
            recipient_address=self.recipient_address,
            card_number=self.card_number,
            contact_email=self.contact_email,
            user_id=self.user_id,
        )


class StatusUpdateBody(BaseModel):
    """Admin status change."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: OrderStatus
    tx_hash: Optional[str] = Field(None, alias="txHash")
    payout_tx_hash: Optional[str] = Field(None, alias="payoutTxHash")
