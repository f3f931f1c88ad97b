"""Shared catalog fixtures for access engine tests."""

import pytest

from core.access import build_catalog_index
from core.metrics import reset_metrics


@pytest.fixture(autouse=True)
def clean_metrics():
    """Reset metrics around each test."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def scenario_catalog():
    """The minimal agency catalog: one membership, one implication."""
    return {
        "version": "1",
        "permissions": [
            {"key": "clients.read", "label": "View clients", "implies": ["clients.list"]},
            {"key": "clients.list", "label": "List clients"},
        ],
        "memberships": [
            {
                "key": "agency_admin",
                "label": "Agency Admin",
                "permissions": ["clients.read"],
            },
        ],
    }


@pytest.fixture
def scenario_index(scenario_catalog):
    return build_catalog_index(scenario_catalog)


@pytest.fixture
def catalog_data():
    """A richer catalog with chains, a cycle and a grant-all membership."""
    return {
        "version": "2024.10.1",
        "permissions": [
            {
                "key": "Clients.Read",
                "label": "View clients",
                "description": "Open client records.",
                "category": "clients",
                "surfaces": ["agency.dashboard", "api.clients"],
                "escalationPath": ["Agency Admin"],
                "implies": ["clients.list", "clients.read", None, ""],
            },
            {"key": "clients.list", "label": "List clients", "category": "clients"},
            {"key": "clients.write", "label": "Manage clients", "implies": ["clients.read"]},
            {"key": "chain.a", "implies": ["chain.b"]},
            {"key": "chain.b", "implies": ["chain.c"]},
            {"key": "chain.c"},
            {"key": "cycle.one", "implies": ["cycle.two"]},
            {"key": "cycle.two", "implies": ["cycle.one"]},
            {"key": "notifications:read", "label": "Read notifications"},
            {"key": "", "label": "Nameless"},
            {"key": "clients.list", "label": "Shadowed duplicate"},
        ],
        "memberships": [
            {
                "key": "Agency Admin",
                "label": "Agency Admin",
                "tier": "agency",
                "escalationPath": ["platform_admin"],
                "permissions": ["clients.read", "notifications:read", "clients.read"],
                "aliases": ["agency-owner"],
            },
            {
                "key": "editor",
                "label": "Editor",
                "permissions": ["clients.write"],
                "aliases": ["Content Editor"],
            },
            {
                "key": "platform_admin",
                "label": "Platform Admin",
                "grantAll": True,
                "permissions": ["clients.list"],
                "aliases": ["Admin", "superuser"],
            },
            {"key": None, "label": "Keyless"},
            {"key": "editor", "label": "Second editor", "permissions": ["chain.a"]},
        ],
    }


@pytest.fixture
def index(catalog_data):
    return build_catalog_index(catalog_data)
