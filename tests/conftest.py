"""Shared fakes for tool and gateway tests."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from crm_scheduling.records.base import CreateResult, RecordGateway


class FakeRecordGateway(RecordGateway):
    """In-memory RecordGateway that records every call."""

    def __init__(self, records=None, create_id="001FAKE", error=None):
        self.records = list(records or [])
        self.create_id = create_id
        self.error = error
        self.queries: list[str] = []
        self.created: list[tuple[str, dict]] = []
        self.updated: list[tuple[str, str, dict]] = []
        self.close_count = 0

    async def query(self, statement):
        self.queries.append(statement)
        if self.error:
            raise self.error
        return list(self.records)

    async def create(self, object_type, fields):
        self.created.append((object_type, fields))
        if self.error:
            raise self.error
        return CreateResult(success=True, id=self.create_id)

    async def update(self, object_type, record_id, fields):
        self.updated.append((object_type, record_id, fields))
        if self.error:
            raise self.error
        return True

    async def close(self):
        self.close_count += 1


class FakeConnector:
    """Connector returning ``gateway``; optional errors raised on the first calls."""

    def __init__(self, gateway, errors=()):
        self.gateway = gateway
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.gateway


@pytest.fixture
def gateway():
    return FakeRecordGateway()


@pytest.fixture
def connector(gateway):
    return FakeConnector(gateway)
