"""Account creation tool."""

from __future__ import annotations

from typing import Any

from crm_scheduling.models.tool_args import CreateAccountArgs
from crm_scheduling.records.base import RecordGateway

from .base import BaseTool

# Optional argument -> Salesforce field
_OPTIONAL_FIELDS = {
    "phone": "Phone",
    "website": "Website",
    "industry": "Industry",
    "description": "Description",
}


class CreateAccountTool(BaseTool):
    name = "create_account"
    description = (
        "Create a business/company account in Salesforce. Use for B2B customers when "
        "tracking a company separately from individual contacts. Optional - most SMS "
        "conversations only need contacts."
    )
    args_model = CreateAccountArgs

    async def run(self, args: CreateAccountArgs, gateway: RecordGateway) -> dict[str, Any]:
        fields: dict[str, Any] = {"Name": args.name}
        for arg_name, sf_field in _OPTIONAL_FIELDS.items():
            value = getattr(args, arg_name)
            if value:
                fields[sf_field] = value

        result = await gateway.create("Account", fields)
        return {"success": result.success, "accountId": result.id}
