"""Secretaria Online backend.

Academic enrollment lifecycle service: document-gated enrollment,
term contracts with renewal, and batch grade submission.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
