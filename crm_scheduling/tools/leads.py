"""Lead tools: phone search and create."""

from __future__ import annotations

from typing import Any

from crm_scheduling.config import LeadDefaults
from crm_scheduling.models.tool_args import CreateLeadArgs, PhoneSearchArgs
from crm_scheduling.records.base import Connector, RecordGateway

from .base import BaseTool
from .phone_search import search_by_phone

LEAD_FIELDS = ["Id", "FirstName", "LastName", "Company", "Phone", "Email", "Status", "LeadSource"]


class SearchLeadsTool(BaseTool):
    name = "search_leads"
    description = (
        "Search for existing leads in Salesforce by phone number. Leads are potential "
        "customers who haven't been qualified yet. Use this to check if an inbound contact "
        "is already a lead before creating a new one. Returns lead ID, name, company, "
        "phone, and status. Handles any phone format (with or without dashes, parentheses, etc.)."
    )
    args_model = PhoneSearchArgs

    def __init__(self, connect: Connector, limit: int = 10) -> None:
        super().__init__(connect)
        self._limit = limit

    async def run(self, args: PhoneSearchArgs, gateway: RecordGateway) -> list[dict[str, Any]]:
        return await search_by_phone(gateway, "Lead", LEAD_FIELDS, args.phone, self._limit)


class CreateLeadTool(BaseTool):
    name = "create_lead"
    description = (
        "Create a new lead in Salesforce. Leads represent potential customers at the top of "
        "the sales funnel. Use this instead of create_contact when the person hasn't been "
        "qualified yet. Returns the new leadId. Lead source is set automatically."
    )
    args_model = CreateLeadArgs

    def __init__(self, connect: Connector, defaults: LeadDefaults | None = None) -> None:
        super().__init__(connect)
        self._defaults = defaults or LeadDefaults()

    def lead_fields(self, args: CreateLeadArgs) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "FirstName": args.firstName,
            "LastName": args.lastName,
            "Company": args.company or self._defaults.company,
            "Phone": args.phone,
            "Status": args.status or self._defaults.status,
            "LeadSource": self._defaults.lead_source,
        }
        if args.email:
            fields["Email"] = args.email
        return fields

    async def run(self, args: CreateLeadArgs, gateway: RecordGateway) -> dict[str, Any]:
        result = await gateway.create("Lead", self.lead_fields(args))
        return {"success": result.success, "leadId": result.id}
