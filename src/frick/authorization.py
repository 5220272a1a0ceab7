"""Platform permission required before anything can be blocked."""

from collections.abc import Awaitable, Callable

import psutil
from loguru import logger

from frick.schema import AuthorizationState

PermissionRequest = Callable[[], Awaitable[bool]]

DENIED_REASON = (
    "Blocking permission required. Allow frick to manage processes "
    "(run as the user who owns the blocked apps), then run `frick authorize`."
)


async def request_process_permission() -> bool:
    """
    Desktop permission check. Blocking terminates processes owned by the
    current user, so permission is granted when that user can be resolved.
    """
    try:
        psutil.Process().username()
        return True
    except (psutil.AccessDenied, psutil.NoSuchProcess):
        return False


class AuthorizationGate:
    """Requests the platform permission and caches the answer."""

    def __init__(self, request_permission: PermissionRequest = request_process_permission):
        self._request_permission = request_permission
        self.state = AuthorizationState.UNREQUESTED
        self.reason: str | None = None

    def is_authorized(self) -> bool:
        return self.state is AuthorizationState.GRANTED

    async def request_authorization(self) -> AuthorizationState:
        """
        Asks the platform for permission. Once granted the state never goes
        back. If the caller cancels while waiting, the state is left as it was.
        """
        if self.state is AuthorizationState.GRANTED:
            return self.state

        try:
            granted = await self._request_permission()
        except (OSError, psutil.Error) as e:
            logger.error(f"Permission request failed: {e}")
            granted = False

        if granted:
            self.state = AuthorizationState.GRANTED
            self.reason = None
            logger.info("Blocking permission granted")
        else:
            self.state = AuthorizationState.DENIED
            self.reason = DENIED_REASON
            logger.warning("Blocking permission denied")
        return self.state
