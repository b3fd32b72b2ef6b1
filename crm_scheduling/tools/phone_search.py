"""Shared phone lookup used by the contact and lead searches."""

from __future__ import annotations

import logging
from typing import Any

from crm_scheduling.phone import generate_candidates
from crm_scheduling.records.base import RecordGateway
from crm_scheduling.records.soql import SoqlQuery

logger = logging.getLogger(__name__)


def redact_phone(value: str) -> str:
    """Mask a phone number for logging, keeping the last 2 digits."""
    if not value or len(value) <= 4:
        return "***"
    return "***" + value[-2:]


def build_phone_query(
    object_type: str, fields: list[str], phone: str, limit: int = 10
) -> str:
    """SOQL matching any stored representation of ``phone``."""
    return (
        SoqlQuery(object_type)
        .select(*fields)
        .where_like_any("Phone", generate_candidates(phone))
        .limit(limit)
        .build()
    )


def unique_by_id(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop repeated records, keeping the first occurrence of each Id."""
    seen: dict[str, dict[str, Any]] = {}
    for record in records:
        seen.setdefault(record.get("Id", id(record)), record)
    return list(seen.values())


async def search_by_phone(
    gateway: RecordGateway,
    object_type: str,
    fields: list[str],
    phone: str,
    limit: int = 10,
) -> list[dict[str, Any]]:
    statement = build_phone_query(object_type, fields, phone, limit)
    records = await gateway.query(statement)
    matches = unique_by_id(records)
    logger.info(
        "%s phone search %s: %d match(es)", object_type, redact_phone(phone), len(matches)
    )
    return matches
