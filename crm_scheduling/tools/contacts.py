"""Contact tools: phone search, create, and conversation summary update."""

from __future__ import annotations

from typing import Any

from crm_scheduling.errors import ExternalServiceError
from crm_scheduling.models.tool_args import (
    CreateContactArgs,
    PhoneSearchArgs,
    UpdateContactSummaryArgs,
)
from crm_scheduling.records.base import Connector, RecordGateway

from .base import BaseTool
from .phone_search import search_by_phone

CONTACT_FIELDS = ["Id", "FirstName", "LastName", "Phone"]


class SearchContactsTool(BaseTool):
    name = "search_contacts"
    description = (
        "Search for existing contacts in Salesforce by phone number. Use this FIRST when "
        "a customer texts in to check if they already exist in the system. Returns contact "
        "ID, name, and phone. If no results found, use create_contact to add them. Handles "
        "any phone format (with or without dashes, parentheses, etc.)."
    )
    args_model = PhoneSearchArgs

    def __init__(self, connect: Connector, limit: int = 10) -> None:
        super().__init__(connect)
        self._limit = limit

    async def run(self, args: PhoneSearchArgs, gateway: RecordGateway) -> list[dict[str, Any]]:
        return await search_by_phone(gateway, "Contact", CONTACT_FIELDS, args.phone, self._limit)


class CreateContactTool(BaseTool):
    name = "create_contact"
    description = (
        "Create a new contact in Salesforce CRM. Use this when search_contacts returns no "
        "results for a new customer. Returns the new contactId which is required for "
        "create_appointment and update_contact_summary."
    )
    args_model = CreateContactArgs

    async def run(self, args: CreateContactArgs, gateway: RecordGateway) -> dict[str, Any]:
        result = await gateway.create(
            "Contact",
            {"FirstName": args.firstName, "LastName": args.lastName, "Phone": args.phone},
        )
        return {"success": result.success, "contactId": result.id}


class UpdateContactSummaryTool(BaseTool):
    name = "update_contact_summary"
    description = (
        "Save SMS conversation summary directly to the Contact record in Salesforce. Call "
        "this AFTER every customer conversation ends. Updates the Contact's call summary "
        "field with the conversation details."
    )
    args_model = UpdateContactSummaryArgs

    def __init__(self, connect: Connector, summary_field: str = "Invoca_Call_Summary__c") -> None:
        super().__init__(connect)
        self._summary_field = summary_field

    async def run(self, args: UpdateContactSummaryArgs, gateway: RecordGateway) -> dict[str, Any]:
        ok = await gateway.update(
            "Contact", args.contactId, {self._summary_field: args.conversationSummary}
        )
        if not ok:
            raise ExternalServiceError(f"Contact {args.contactId} was not updated")
        return {"success": ok, "contactId": args.contactId}
