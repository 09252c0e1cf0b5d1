"""Data models for card usage extraction."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CardCompany(str, Enum):
    """Card issuers whose notification emails can be parsed."""

    MUFG = "MUFG"  # 三菱UFJ銀行 (JCB debit)
    SMBC = "SMBC"  # 三井住友カード


class CardUsage(BaseModel):
    """One card transaction extracted from a notification email.

    Instances are immutable; corrections are delete + recreate.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = Field(default=None, description="Store-assigned identifier")
    card_name: str = Field(..., description="Card display name as written by the issuer")
    amount: int = Field(..., ge=0, description="Amount in whole currency units")
    where_to_use: str = Field(default="", description="Merchant or location, may be empty")
    datetime_of_use: datetime = Field(..., description="Transaction time stated in the email")
    card_company: CardCompany = Field(..., description="Issuer whose format was applied")
    created_at: datetime | None = Field(default=None, description="When the record was stored")

    @field_validator("datetime_of_use")
    @classmethod
    def _require_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("datetime_of_use must be timezone-aware")
        return value


class ExtractedFields(BaseModel):
    """Raw field values captured by the anchor patterns, before parsing."""

    card_name: str | None = None
    datetime_of_use: str | None = None
    amount: str | None = None
    where_to_use: str | None = None
    patterns_matched: dict[str, str] = Field(default_factory=dict, description="Anchors that matched")
