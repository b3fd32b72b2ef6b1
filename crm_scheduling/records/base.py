"""Abstract base class for the CRM record store.

Tools only need three capabilities from the CRM: run a query, create a
record and update a record.  Any backend (Salesforce, a test double, ...)
implements this ABC.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

# 15-character case-sensitive or 18-character case-insensitive record id
RECORD_ID_PATTERN = r"^[A-Za-z0-9]{15}(?:[A-Za-z0-9]{3})?$"
_RECORD_ID = re.compile(RECORD_ID_PATTERN)


def is_record_id(value: str) -> bool:
    return bool(_RECORD_ID.match(value))


@dataclass
class CreateResult:
    """Outcome of a record create."""

    success: bool
    id: str = ""
    errors: list[str] = field(default_factory=list)


class RecordGateway(ABC):
    """Abstract CRM backend.

    Implementations raise ``AuthenticationError`` when their credentials
    are rejected and ``ExternalServiceError`` for any other refusal.
    """

    @abstractmethod
    async def query(self, statement: str) -> list[dict[str, Any]]:
        """Run a query statement and return every matching record.

        Args:
            statement: A complete query (see ``SoqlQuery``).

        Returns:
            Records as plain dicts keyed by field name.
        """

    @abstractmethod
    async def create(self, object_type: str, fields: dict[str, Any]) -> CreateResult:
        """Create one record of ``object_type``.

        Args:
            object_type: CRM object name, e.g. ``"Contact"``.
            fields: Field name to value.
        """

    @abstractmethod
    async def update(
        self, object_type: str, record_id: str, fields: dict[str, Any]
    ) -> bool:
        """Update fields on an existing record.

        Returns:
            True if the record store accepted the update.
        """

    async def close(self) -> None:
        """Release transport resources.  Safe to call multiple times."""


# Opens a fresh, authenticated gateway; called once per tool invocation.
Connector = Callable[[], Awaitable[RecordGateway]]
