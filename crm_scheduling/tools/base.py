"""Base class for protocol-callable CRM tools.

Every tool follows the same shape: validate arguments against its pydantic
model, open a record gateway, do the work, serialize a JSON payload.
``invoke`` is the error boundary; whatever goes wrong inside a tool comes
back as an ``isError`` result instead of propagating to the session.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import ValidationError

from crm_scheduling.errors import AuthenticationError, CRMError, ToolValidationError
from crm_scheduling.models.tool_args import ToolArgs
from crm_scheduling.records.base import Connector, RecordGateway

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Text content returned to the protocol client."""

    text: str
    is_error: bool = False

    @classmethod
    def ok(cls, payload: Any) -> "ToolResult":
        return cls(text=json.dumps(payload, indent=2, default=str))

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(text=f"Error: {message}", is_error=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


def format_validation_error(exc: ValidationError) -> str:
    """One line per failing field: ``field: message``."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "Invalid arguments - " + "; ".join(parts)


class BaseTool(ABC):
    """A named, schema-validated operation backed by the CRM.

    Subclasses set ``name``, ``description`` and ``args_model`` and
    implement ``run``.  Tools that never touch the CRM for some inputs can
    override ``needs_gateway``.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    args_model: ClassVar[type[ToolArgs]]

    def __init__(self, connect: Connector) -> None:
        self._connect = connect

    @property
    def parameters_schema(self) -> dict:
        schema = self.args_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("required", [])
        return schema

    def describe(self) -> dict[str, Any]:
        """Tool descriptor as listed to protocol clients."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.parameters_schema,
        }

    def validate(self, arguments: dict[str, Any] | None) -> ToolArgs:
        try:
            return self.args_model.model_validate(arguments or {})
        except ValidationError as exc:
            raise ToolValidationError(format_validation_error(exc)) from exc

    def needs_gateway(self, args: ToolArgs) -> bool:
        return True

    @abstractmethod
    async def run(self, args: ToolArgs, gateway: RecordGateway | None) -> Any:
        """Do the work and return a JSON-serializable payload."""

    async def _run_connected(self, args: ToolArgs) -> Any:
        gateway = await self._connect()
        try:
            return await self.run(args, gateway)
        finally:
            await gateway.close()

    async def invoke(self, arguments: dict[str, Any] | None) -> ToolResult:
        """Validate, execute and convert any failure into an error result."""
        try:
            args = self.validate(arguments)
        except ToolValidationError as exc:
            logger.info("Tool %s rejected arguments: %s", self.name, exc)
            return ToolResult.error(str(exc))

        try:
            if not self.needs_gateway(args):
                return ToolResult.ok(await self.run(args, None))
            try:
                payload = await self._run_connected(args)
            except AuthenticationError as exc:
                # Token may have expired between exchange and use; one fresh try
                logger.warning("Tool %s auth failure, reconnecting: %s", self.name, exc)
                payload = await self._run_connected(args)
            return ToolResult.ok(payload)
        except CRMError as exc:
            logger.warning("Tool %s failed: %s", self.name, exc)
            return ToolResult.error(str(exc))
        except Exception as exc:
            logger.exception("Tool %s raised unexpectedly", self.name)
            return ToolResult.error(str(exc) or exc.__class__.__name__)
