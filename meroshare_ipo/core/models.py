# meroshare_ipo/core/models.py
from __future__ import annotations

"""Run parameters and scraped values
-----------------------------------
Plain pydantic models handed to the workflow steps. They are built from the
settings by the caller; the steps never read configuration themselves.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Credentials(BaseModel):
    username: str
    password: str
    dp: Optional[str] = Field(default=None, description="Depository Participant label")

    @field_validator("username", "password")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("credentials cannot be empty")
        return v


class ApplicantDetails(BaseModel):
    bank: str
    account_number: str
    kitta: str
    crn: str
    pin: Optional[str] = Field(default=None, description="Transaction PIN, asked after 'Proceed'")


class AllotmentThresholds(BaseModel):
    max_value_per_unit: float = Field(default=100.0, ge=0)
    max_min_unit: float = Field(default=10.0, ge=0)
    # True: value <= threshold passes; False: value must be strictly below.
    inclusive: bool = True


class AllotmentTerms(BaseModel):
    share_value_per_unit: Optional[float] = None
    min_unit: Optional[float] = None
    max_unit: Optional[float] = None


class IssueDetails(BaseModel):
    company_name: Optional[str] = None
    share_type: Optional[str] = None
    share_group: Optional[str] = None
    raw_text: str = ""


__all__ = [
    "Credentials",
    "ApplicantDetails",
    "AllotmentThresholds",
    "AllotmentTerms",
    "IssueDetails",
]
