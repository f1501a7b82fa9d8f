"""
Follow-up actions run after the response.

Side effects that must not block or fail the primary operation (emails,
newsletter enrolment, admin notifications) are queued during the request and
run once the main transaction has committed and the response is produced.
Each action has its own error boundary: a failure is logged and the queue
moves on to the next action.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class FollowUpAction:
    name: str
    func: Callable[..., Awaitable[Any]]
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


class FollowUpQueue:
    """
    Ordered list of fire-and-forget actions for one request.

    Usage:
        follow_ups.add("verification_email", email_service.send_verification_email,
                       user.username, token, base_url)
    """

    def __init__(self) -> None:
        self.actions: list[FollowUpAction] = []

    def add(self, name: str, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> None:
        self.actions.append(FollowUpAction(name, func, args, kwargs))

    def __len__(self) -> int:
        return len(self.actions)

    async def run(self) -> list[str]:
        """
        Run every queued action in order.

        Returns:
            Names of the actions that failed
        """
        failed: list[str] = []
        for action in self.actions:
            try:
                await action.func(*action.args, **action.kwargs)
            except Exception:
                logger.error(f"Follow-up action '{action.name}' failed", exc_info=True)
                failed.append(action.name)
        self.actions.clear()
        return failed
