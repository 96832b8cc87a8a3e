"""Pytest configuration and shared fixtures."""

import pytest
from rest_framework.test import APIClient

from bookings.services import BookingCoordinator, RefundService
from tests.fakes import NOW, FakeCommerceStore


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def store() -> FakeCommerceStore:
    return FakeCommerceStore()


@pytest.fixture
def refunds(store: FakeCommerceStore) -> RefundService:
    return RefundService(store, clock=lambda: NOW)


@pytest.fixture
def coordinator(store: FakeCommerceStore, refunds: RefundService) -> BookingCoordinator:
    return BookingCoordinator(store, refunds=refunds, clock=lambda: NOW)
