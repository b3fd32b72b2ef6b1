"""Data models for the tool layer."""

from .tool_args import (
    AvailableSlotsArgs,
    CreateAccountArgs,
    CreateAppointmentArgs,
    CreateContactArgs,
    CreateLeadArgs,
    PhoneSearchArgs,
    ToolArgs,
    UpdateContactSummaryArgs,
)

__all__ = [
    "AvailableSlotsArgs",
    "CreateAccountArgs",
    "CreateAppointmentArgs",
    "CreateContactArgs",
    "CreateLeadArgs",
    "PhoneSearchArgs",
    "ToolArgs",
    "UpdateContactSummaryArgs",
]
