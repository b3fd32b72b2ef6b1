"""Name -> tool lookup for the protocol layer."""

from __future__ import annotations

import logging
from typing import Any

from crm_scheduling.records.base import Connector

from .accounts import CreateAccountTool
from .appointments import CreateAppointmentTool, GetAvailableSlotsTool
from .base import BaseTool, ToolResult
from .contacts import CreateContactTool, SearchContactsTool, UpdateContactSummaryTool
from .leads import CreateLeadTool, SearchLeadsTool

log = logging.getLogger("crm_scheduling.tools.registry")

# Names the tools were first published under; existing agent prompts still use them
LEGACY_NAMES = {
    "hackstart_search_contacts": "search_contacts",
    "hackstart_create_contact": "create_contact",
    "hackstart_search_leads": "search_leads",
    "hackstart_create_lead": "create_lead",
    "hackstart_create_sms_log": "update_contact_summary",
    "hackstart_create_appointment": "create_appointment",
    "hackstart_get_available_slots": "get_available_slots",
    "hackstart_create_account": "create_account",
}


class UnknownToolError(KeyError):
    """Raised by ``ToolRegistry.get`` for a name that was never registered."""


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}
        self._aliases: dict[str, str] = {}

    def register(self, tool: BaseTool) -> None:
        if tool.name in self._tools or tool.name in self._aliases:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def alias(self, alias: str, target: str) -> None:
        """Make ``alias`` callable as ``target`` without listing it."""
        if target not in self._tools:
            raise UnknownToolError(target)
        if alias in self._tools or alias in self._aliases:
            raise ValueError(f"Tool already registered: {alias}")
        self._aliases[alias] = target

    def get(self, name: str) -> BaseTool:
        try:
            return self._tools[self._aliases.get(name, name)]
        except KeyError:
            raise UnknownToolError(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self._tools or name in self._aliases

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def list_tools(self) -> list[dict[str, Any]]:
        return [tool.describe() for tool in self._tools.values()]

    async def call(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        tool = self.get(name)
        log.info("Calling tool %s", name)
        return await tool.invoke(arguments)


def build_default_registry(connect: Connector, settings) -> ToolRegistry:
    """The eight CRM tools, configured from ``settings``, plus their legacy names."""
    registry = ToolRegistry()
    for tool in (
        SearchContactsTool(connect, limit=settings.search_limit),
        CreateContactTool(connect),
        SearchLeadsTool(connect, limit=settings.search_limit),
        CreateLeadTool(connect, defaults=settings.lead_defaults()),
        UpdateContactSummaryTool(connect, summary_field=settings.contact_summary_field),
        CreateAppointmentTool(connect),
        GetAvailableSlotsTool(connect, hours=settings.business_hours()),
        CreateAccountTool(connect),
    ):
        registry.register(tool)
    for legacy, name in LEGACY_NAMES.items():
        registry.alias(legacy, name)
    return registry
