from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Literal, Optional

from pydantic import BeforeValidator, Field


def _to_lower_str(v):
    if v is None:
        return v
    return str(v).strip().lower()


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


PaymentMethod = Annotated[Literal["cash", "card", "upi"], BeforeValidator(_to_lower_str)]
ImportKind = Annotated[Literal["categories", "items"], BeforeValidator(_to_lower_str)]
ReportPeriod = Annotated[
    Literal["overall", "all", "today", "week", "month", "year"],
    BeforeValidator(_to_lower_str),
]

TaxRate = Annotated[Decimal, Field(ge=0, le=100)]
Amount = Annotated[Decimal, Field(ge=0)]
# Cash tendered; a blank field from the till means "exact amount".
ReceivedAmount = Annotated[Optional[Amount], BeforeValidator(_blank_to_none)]

