"""Shared fixtures for adb-vnet-injector tests."""

import copy

import pytest

from tests.fakes import EXPORTED_TEMPLATE, FakeAzureClient


@pytest.fixture
def client():
    return FakeAzureClient()


@pytest.fixture
def exported_template():
    return copy.deepcopy(EXPORTED_TEMPLATE)
