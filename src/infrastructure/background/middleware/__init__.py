# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Dramatiq middleware."""

from src.infrastructure.background.middleware.context import (
    LogContextMiddleware,
    get_triggered_by,
    reset_triggered_by,
    set_triggered_by,
)

__all__ = [
    "LogContextMiddleware",
    "get_triggered_by",
    "reset_triggered_by",
    "set_triggered_by",
]
