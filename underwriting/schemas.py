from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from underwriting.catalog import Department, cover_group_for

Currency = Literal["AED", "USD", "EUR"]
QuotationStatus = Literal["Open", "Confirmed", "Decline"]
BusinessType = Literal["New Business", "Renewal"]
BusinessTypeFilter = Literal["New Business", "Renewal", "all"]
OrderStatus = Literal["Firm Order Received", "COI Issued", "KYC Pending", "KYC Completed", "Policy Issued"]
CoverGroup = Literal["ENGINEERING", "PROPERTY"]


def _decimal_string(value: str | int | float, *, allow_negative: bool) -> str:
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValueError("premium must be a valid number") from exc
    if not amount.is_finite():
        raise ValueError("premium must be a valid number")
    if not allow_negative and amount < 0:
        raise ValueError("estimated premium must be greater than or equal to 0")
    return format(amount, "f")


def _iso_date(value: str | date | datetime) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    text = str(value).strip()
    try:
        datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError("date must be ISO-8601") from exc
    return text


class QuotationRequest(BaseModel):
    broker_name: str = Field(min_length=1)
    insured_name: str = Field(min_length=1)
    product_type: str
    cover_group: CoverGroup | None = None
    estimated_premium: str
    currency: Currency
    quotation_date: str
    status: QuotationStatus
    decline_reason: str | None = None
    notes: str | None = None
    requires_pre_condition_survey: bool = False

    @field_validator("estimated_premium", mode="before")
    @classmethod
    def _premium(cls, value: str | int | float) -> str:
        return _decimal_string(value, allow_negative=False)

    @field_validator("quotation_date", mode="before")
    @classmethod
    def _date(cls, value: str | date | datetime) -> str:
        return _iso_date(value)


class OrderRequest(BaseModel):
    broker_name: str = Field(min_length=1)
    insured_name: str = Field(min_length=1)
    product_type: str
    cover_group: CoverGroup | None = None
    business_type: BusinessType
    premium: str
    currency: Currency
    order_date: str
    statuses: list[OrderStatus] = Field(default_factory=list)
    notes: str | None = None
    requires_pre_condition_survey: bool = False

    @field_validator("premium", mode="before")
    @classmethod
    def _premium(cls, value: str | int | float) -> str:
        return _decimal_string(value, allow_negative=True)

    @field_validator("order_date", mode="before")
    @classmethod
    def _date(cls, value: str | date | datetime) -> str:
        return _iso_date(value)


class OrderUpdateRequest(BaseModel):
    broker_name: str | None = Field(default=None, min_length=1)
    insured_name: str | None = Field(default=None, min_length=1)
    product_type: str | None = None
    cover_group: CoverGroup | None = None
    business_type: BusinessType | None = None
    premium: str | None = None
    currency: Currency | None = None
    order_date: str | None = None
    statuses: list[OrderStatus] | None = None
    notes: str | None = None
    requires_pre_condition_survey: bool | None = None

    @field_validator("premium", mode="before")
    @classmethod
    def _premium(cls, value: str | int | float | None) -> str | None:
        return None if value is None else _decimal_string(value, allow_negative=True)

    @field_validator("order_date", mode="before")
    @classmethod
    def _date(cls, value: str | date | datetime | None) -> str | None:
        return None if value is None else _iso_date(value)


class BulkDeleteRequest(BaseModel):
    ids: list[int] = Field(min_length=1)


class ActiveYearRequest(BaseModel):
    year: int = Field(ge=2000, le=2100)


def check_product_type(department: Department, product_type: str | None) -> None:
    if product_type is not None and product_type not in department.product_types:
        raise ValueError(f"product_type '{product_type}' is not offered by {department.name}")


def resolve_cover_group(department: Department, product_type: str | None, cover_group: str | None) -> str | None:
    """Property & Engineering rows carry a cover group; other departments never do."""
    if department.slug != "property-engineering":
        return None
    if cover_group:
        return cover_group
    return cover_group_for(product_type) if product_type else None
