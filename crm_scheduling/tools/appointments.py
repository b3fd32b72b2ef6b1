"""Appointment tools: slot lookup and booking.

``get_available_slots`` reads the day's Events from the CRM and runs them
through the availability engine.  ``create_appointment`` books an Event
against a Contact or Lead.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from crm_scheduling.availability import (
    AvailabilityResult,
    BookedInterval,
    BusinessHoursConfig,
    compute_availability,
    day_query_window,
    describe_hours,
    is_business_day,
    unavailable,
)
from crm_scheduling.models.tool_args import AvailableSlotsArgs, CreateAppointmentArgs
from crm_scheduling.records.base import Connector, RecordGateway
from crm_scheduling.records.soql import SoqlQuery

from .base import BaseTool

logger = logging.getLogger(__name__)


def _iso_utc(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_event_intervals(records: list[dict[str, Any]]) -> list[BookedInterval]:
    """Turn Event records into intervals.

    Raises:
        ValueError: a record is missing or has an unparseable timestamp.
    """
    intervals: list[BookedInterval] = []
    for record in records:
        start_raw = record.get("StartDateTime")
        end_raw = record.get("EndDateTime")
        if not start_raw or not end_raw:
            raise ValueError(f"Event {record.get('Id', '?')} has no start/end time")
        # Salesforce emits "+0000" offsets; fromisoformat needs a colon before 3.11
        start = datetime.fromisoformat(_normalize_offset(start_raw))
        end = datetime.fromisoformat(_normalize_offset(end_raw))
        intervals.append(BookedInterval(start=_as_utc(start), end=_as_utc(end)))
    return intervals


def _as_utc(moment: datetime) -> datetime:
    # Offset-less values are UTC, the same as the booking arguments
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _normalize_offset(value: str) -> str:
    value = value.strip()
    if value.endswith("Z"):
        return value[:-1] + "+00:00"
    if len(value) > 5 and value[-5] in "+-" and value[-4:].isdigit():
        return f"{value[:-2]}:{value[-2:]}"
    return value


class GetAvailableSlotsTool(BaseTool):
    name = "get_available_slots"
    args_model = AvailableSlotsArgs

    def __init__(self, connect: Connector, hours: BusinessHoursConfig | None = None) -> None:
        super().__init__(connect)
        self._hours = hours or BusinessHoursConfig()

    @property
    def description(self) -> str:  # type: ignore[override]
        return (
            "Check available appointment times for a specific date. Call this BEFORE offering "
            "appointment times to customers or booking appointments. Returns available "
            f"{self._hours.slot_duration_minutes}-minute slots not already booked. Business "
            f"hours: Monday-Friday {describe_hours(self._hours)} {self._hours.timezone_label}. "
            "Closed weekends."
        )

    def needs_gateway(self, args: AvailableSlotsArgs) -> bool:
        return is_business_day(args.date)

    async def fetch_bookings(self, gateway: RecordGateway, args: AvailableSlotsArgs) -> list[dict]:
        start, end = day_query_window(args.date, self._hours)
        statement = (
            SoqlQuery("Event")
            .select("Id", "StartDateTime", "EndDateTime")
            .where_overlaps("StartDateTime", "EndDateTime", start, end)
            .build()
        )
        return await gateway.query(statement)

    async def run(self, args: AvailableSlotsArgs, gateway: RecordGateway | None) -> dict[str, Any]:
        if gateway is None:
            return self._closed_payload()

        records = await self.fetch_bookings(gateway, args)
        try:
            intervals = parse_event_intervals(records)
        except ValueError as exc:
            result = unavailable(args.date, f"unreadable booking data: {exc}")
        else:
            result = compute_availability(args.date, intervals, self._hours)

        if result.status == "closed":
            return self._closed_payload()
        return self._open_payload(result)

    def _closed_payload(self) -> dict[str, Any]:
        return {
            "available": False,
            "message": (
                "We are closed on weekends. Business hours are Monday-Friday "
                f"{describe_hours(self._hours)} {self._hours.timezone_label}."
            ),
            "availableSlots": [],
        }

    def _open_payload(self, result: AvailabilityResult) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "date": result.day.isoformat(),
            "timezone": self._hours.timezone_label,
            "businessHours": describe_hours(self._hours),
            "slotDuration": f"{self._hours.slot_duration_minutes} minutes",
            "availableSlots": result.labels,
            "totalAvailable": len(result.slots),
        }
        if result.status == "unavailable":
            payload["available"] = False
            payload["message"] = (
                "Availability could not be determined for this date. "
                "Please try another date or check back later."
            )
        return payload


class CreateAppointmentTool(BaseTool):
    name = "create_appointment"
    description = (
        "Book an appointment in Salesforce calendar as an Event. Use this when customer "
        "confirms a specific time slot. IMPORTANT: Always call get_available_slots first "
        "to verify the slot is available before booking."
    )
    args_model = CreateAppointmentArgs

    async def run(self, args: CreateAppointmentArgs, gateway: RecordGateway) -> dict[str, Any]:
        result = await gateway.create(
            "Event",
            {
                "Subject": args.subject,
                "StartDateTime": _iso_utc(args.startDateTime),
                "EndDateTime": _iso_utc(args.endDateTime),
                "WhoId": args.contactId,
            },
        )
        logger.info("Booked %s for %s at %s", result.id, args.contactId, _iso_utc(args.startDateTime))
        return {"success": result.success, "appointmentId": result.id}
