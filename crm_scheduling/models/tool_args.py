"""Pydantic models for tool arguments.

Field names follow the camelCase the protocol clients send.  Each model is
the single source of truth for a tool's input schema: ``BaseTool`` derives
the advertised JSON schema from it and validates incoming arguments with
it before any CRM call is made.
"""

from __future__ import annotations

import re
import datetime as dt
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from crm_scheduling.records.base import RECORD_ID_PATTERN

_DIGIT = re.compile(r"\d")


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class PhoneSearchArgs(ToolArgs):
    """Arguments for the contact and lead phone searches."""

    phone: str = Field(
        description=(
            "Phone number in any format (e.g., '239-290-1984', '2392901984', "
            "'(239) 290-1984'). The search will automatically try multiple "
            "formats to find matches."
        ),
    )

    @field_validator("phone")
    @classmethod
    def _has_digits(cls, value: str) -> str:
        if not _DIGIT.search(value):
            raise ValueError("phone must contain at least one digit")
        return value


class CreateContactArgs(ToolArgs):
    firstName: str = Field(description="Customer's first name (e.g., 'John').")
    lastName: str = Field(min_length=1, description="Customer's last name (e.g., 'Smith').")
    phone: str = Field(
        description="Customer's phone number with country code (e.g., '+15551234567' or '5551234567')."
    )


class CreateLeadArgs(ToolArgs):
    firstName: str = Field(description="Lead's first name (e.g., 'John').")
    lastName: str = Field(min_length=1, description="Lead's last name (e.g., 'Smith'). Required.")
    phone: str = Field(description="Lead's phone number (e.g., '+15551234567').")
    company: Optional[str] = Field(
        default=None,
        description="Company or business name (optional, e.g., 'Acme Corp'). Defaults to 'Individual' if not provided.",
    )
    email: Optional[str] = Field(default=None, description="Lead's email address (optional).")
    status: Optional[str] = Field(
        default=None,
        description=(
            "Lead status. Options: 'Open - Not Contacted', 'Working - Contacted', "
            "'Closed - Converted', 'Closed - Not Converted'. Default: 'Open - Not Contacted'."
        ),
    )


class UpdateContactSummaryArgs(ToolArgs):
    contactId: str = Field(
        pattern=RECORD_ID_PATTERN,
        description="The Salesforce Contact ID (starts with '003'). Get this from search_contacts or create_contact response.",
    )
    conversationSummary: str = Field(
        min_length=1,
        description=(
            "Complete summary of the SMS conversation. Include: customer intent, what was "
            "discussed, any appointments booked, commitments made, and next steps."
        ),
    )


class CreateAppointmentArgs(ToolArgs):
    contactId: str = Field(
        pattern=RECORD_ID_PATTERN,
        description=(
            "The Salesforce Contact ID or Lead ID (starts with '003' for contacts or '00Q' for "
            "leads). Get this from search_contacts, create_contact, search_leads, or create_lead response."
        ),
    )
    subject: str = Field(
        min_length=1,
        description="Appointment title shown on calendar (e.g., 'Sales Consultation', 'Product Demo').",
    )
    startDateTime: datetime = Field(
        description="Appointment start time in ISO format. Must be in UTC (e.g., '2026-01-25T14:00:00Z' for 9am Eastern).",
    )
    endDateTime: datetime = Field(
        description="Appointment end time in ISO format. Typically 30 minutes after start (e.g., '2026-01-25T14:30:00Z').",
    )

    @field_validator("startDateTime", "endDateTime")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _end_after_start(self) -> "CreateAppointmentArgs":
        if self.endDateTime <= self.startDateTime:
            raise ValueError("endDateTime must be after startDateTime")
        return self


class AvailableSlotsArgs(ToolArgs):
    date: dt.date = Field(
        description=(
            "Date to check in YYYY-MM-DD format (e.g., '2026-01-25'). Must be a weekday "
            "(Monday-Friday). Returns empty for weekends."
        ),
    )

    @field_validator("date", mode="before")
    @classmethod
    def _iso_date_only(cls, value):
        if isinstance(value, str) and not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value.strip()):
            raise ValueError("date must be in YYYY-MM-DD format")
        return value


class CreateAccountArgs(ToolArgs):
    name: str = Field(
        min_length=1,
        description="Company or business name (e.g., 'Acme Corporation'). This is the only required field.",
    )
    phone: Optional[str] = Field(default=None, description="Company main phone number (optional).")
    website: Optional[str] = Field(
        default=None, description="Company website (optional, e.g., 'https://acme.com')."
    )
    industry: Optional[str] = Field(
        default=None,
        description=(
            "Industry category (optional). Examples: 'Technology', 'Healthcare', 'Finance', "
            "'Retail', 'Manufacturing'."
        ),
    )
    description: Optional[str] = Field(default=None, description="Notes about the company (optional).")
