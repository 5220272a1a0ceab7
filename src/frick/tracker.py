from datetime import datetime

from loguru import logger

from frick.errors import InvalidState
from frick.ledger import DailyTimeLedger
from frick.schema import Active, Idle, SessionState


class SessionTimeTracker:
    """
    Derives session and daily totals from the session start and the ledger.

    Queries are pure: callers refresh the display by calling them on their own
    timer. Only `start` and `commit_session` change state.
    """

    def __init__(self, ledger: DailyTimeLedger, session: SessionState | None = None):
        self.ledger = ledger
        self.session: SessionState = session if session is not None else Idle()

    @property
    def is_active(self) -> bool:
        return isinstance(self.session, Active)

    def start(self, now: datetime) -> Active:
        if self.is_active:
            raise InvalidState("A session is already active")
        self.session = Active(start_time=now)
        return self.session

    def elapsed_session(self, now: datetime) -> float:
        if not isinstance(self.session, Active):
            return 0.0
        return max((now - self.session.start_time).total_seconds(), 0.0)

    def today_total(self, now: datetime) -> float:
        return self.ledger.get(self.ledger.today_key(now)) + self.elapsed_session(now)

    def commit_session(self, now: datetime) -> float:
        """
        Books the active session into the ledger under the day it ends on and
        returns the elapsed seconds.
        """
        if not isinstance(self.session, Active):
            raise InvalidState("No active session to commit")

        elapsed = (now - self.session.start_time).total_seconds()
        if elapsed < 0:
            logger.warning(
                f"Session ends before it started ({elapsed:.1f}s), clock moved back. "
                "Recording 0s."
            )
            elapsed = 0.0

        self.ledger.add(self.ledger.today_key(now), elapsed)
        self.session = Idle()
        logger.info(f"Session committed: {elapsed:.1f}s")
        return elapsed
