# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

The test environment is set before any application module is imported:
the rate limiter and the task broker read settings at import time.
"""

import os
from collections.abc import Iterator
from typing import Any

import pytest

TEST_ENVIRONMENT = {
    "ENVIRONMENT": "test",
    "DEBUG": "true",
    "LOG_LEVEL": "DEBUG",
    "DB_DSN": "sqlite+aiosqlite://",
    "API_RUN_MIGRATIONS": "false",
    "API_SEED_CATALOG": "false",
    "RATE_LIMIT_ENABLED": "false",
    "RATE_LIMIT_STORAGE_URI": "memory://",
    "DRAMATIQ_TEST_MODE": "true",
    "WORKER_SCHEDULER_ENABLED": "false",
    "JWT_SECRET_KEY": "test-secret-key-for-testing-only",
    "JWT_ALGORITHM": "HS256",
}

for _key, _value in TEST_ENVIRONMENT.items():
    os.environ.setdefault(_key, _value)


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables."""
    return dict(TEST_ENVIRONMENT)


@pytest.fixture
def fresh_settings() -> Iterator[None]:
    """Reload settings from the environment around a test."""
    from src.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (in-memory SQLite)"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_student_id() -> str:
    """Provide a sample student ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_admin_id() -> str:
    """Provide a sample admin ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def sample_user_data() -> dict[str, Any]:
    """Provide sample user data for testing."""
    return {
        "email": "student@example.com",
        "full_name": "Maria Souza",
        "role": "student",
    }
