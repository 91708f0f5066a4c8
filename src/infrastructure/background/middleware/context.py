# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Log context middleware for background processing.

Carries the ID of the user who triggered a job through the message
options and binds it, with the actor and message IDs, to the structlog
context while the message is processed.
"""

import contextvars
import logging
from typing import Any

import dramatiq
from dramatiq import Message, Middleware

from src.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)


_triggered_by: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "triggered_by", default=None
)


def get_triggered_by() -> str | None:
    """Get the user ID that triggered the current job, if any."""
    return _triggered_by.get()


def set_triggered_by(user_id: str | None) -> contextvars.Token[str | None]:
    """Set the triggering user ID for messages sent from this context.

    Args:
        user_id: User ID, or None for scheduler-initiated work.

    Returns:
        Context token for resetting.
    """
    return _triggered_by.set(user_id)


def reset_triggered_by(token: contextvars.Token[str | None]) -> None:
    """Restore the triggering user ID saved by set_triggered_by."""
    _triggered_by.reset(token)


class LogContextMiddleware(Middleware):
    """Propagates the triggering user and binds log context per message."""

    TRIGGERED_BY_KEY = "triggered_by"

    def before_enqueue(
        self,
        broker: dramatiq.Broker,
        message: Message,
        delay: int | None,
    ) -> None:
        user_id = get_triggered_by()
        if user_id and self.TRIGGERED_BY_KEY not in message.options:
            message.options[self.TRIGGERED_BY_KEY] = user_id

    def before_process_message(
        self,
        broker: dramatiq.Broker,
        message: Message,
    ) -> None:
        user_id = message.options.get(self.TRIGGERED_BY_KEY)
        set_triggered_by(user_id)
        bind_context(
            actor=message.actor_name,
            message_id=message.message_id,
            triggered_by=user_id or "scheduler",
        )
        logger.debug("Processing message %s (%s)", message.message_id, message.actor_name)

    def after_process_message(
        self,
        broker: dramatiq.Broker,
        message: Message,
        *,
        result: Any = None,
        exception: BaseException | None = None,
    ) -> None:
        set_triggered_by(None)
        clear_context()

    def after_skip_message(
        self,
        broker: dramatiq.Broker,
        message: Message,
    ) -> None:
        set_triggered_by(None)
        clear_context()
