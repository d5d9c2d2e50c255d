"""Shared fixtures.

The database URL must point at SQLite before the package is imported,
since the engine is created at import time.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import pytest
import pytest_asyncio

from rental_inspections.core.config import WorkflowPolicy
from rental_inspections.services.workflow import InspectionWorkflowService, drain_notifications
from tests.factories import BOOKING_END, BOOKING_ID
from tests.fakes import (
    FakeAttachmentStore, FakeBookingLookup, FakePaymentGateway, InMemoryInspectionStore, RecordingNotifier,
)


@pytest.fixture
def policy():
    return WorkflowPolicy(notification_timeout_seconds=0.5)


@pytest.fixture
def store():
    return InMemoryInspectionStore()


@pytest.fixture
def attachments():
    return FakeAttachmentStore()


@pytest.fixture
def bookings():
    return FakeBookingLookup({BOOKING_ID: BOOKING_END})


@pytest.fixture
def payments():
    return FakePaymentGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest_asyncio.fixture
async def service(store, attachments, bookings, payments, notifier, policy):
    yield InspectionWorkflowService(
        store=store,
        attachments=attachments,
        bookings=bookings,
        payments=payments,
        notifier=notifier,
        policy=policy,
    )
    await drain_notifications()
