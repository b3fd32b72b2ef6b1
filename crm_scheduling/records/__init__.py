"""CRM record store abstraction and the Salesforce implementation."""

from .base import RECORD_ID_PATTERN, Connector, CreateResult, RecordGateway, is_record_id

__all__ = ["RECORD_ID_PATTERN", "Connector", "CreateResult", "RecordGateway", "is_record_id"]
