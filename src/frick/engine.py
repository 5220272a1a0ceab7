"""
The blocking session engine.

Owns the blocked/unblocked state and the running session. A tag carrying the
configured phrase toggles between the two states; everything else (profiles,
ledger, authorization) is reached through the engine so mutations are
serialized.

Persisted keys:
    isBlocking        bool
    sessionStartTime  ISO-8601 timestamp, present only while blocking
"""

import threading
from collections.abc import Callable, Iterable
from datetime import datetime
from uuid import UUID

from loguru import logger

from frick.authorization import AuthorizationGate
from frick.errors import (
    ShieldApplyFailed,
    ShieldError,
    TransitionInProgress,
    Unauthorized,
    WriteFailed,
    WrongTag,
)
from frick.ledger import DailyTimeLedger
from frick.profiles import ProfileStore
from frick.schema import Active, AuthorizationState, EngineStatus, Idle, Profile, SessionState
from frick.settings import settings
from frick.shield import ShieldApplicator
from frick.store import KeyValueStore
from frick.tags import TagAuthenticator
from frick.tracker import SessionTimeTracker

IS_BLOCKING_KEY = "isBlocking"
SESSION_START_KEY = "sessionStartTime"

StatusListener = Callable[[EngineStatus], None]

# Toggles and refused toggles also go to the transitions log
transition_log = logger.bind(transition=True)


class BlockingSessionEngine:
    """Serializes tag toggles, profile changes and shield application."""

    def __init__(
        self,
        store: KeyValueStore,
        shield: ShieldApplicator,
        gate: AuthorizationGate | None = None,
        tag_phrase: str | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.shield = shield
        self.gate = gate if gate is not None else AuthorizationGate()
        self.tag_phrase = settings.tag_phrase if tag_phrase is None else tag_phrase
        self._clock = clock

        self.ledger = DailyTimeLedger(store)
        self.profiles = ProfileStore(store)
        self.tracker = SessionTimeTracker(self.ledger, self._load_session())

        self.shield_error: str | None = None
        self._lock = threading.RLock()
        self._scanning = False
        self._listeners: list[StatusListener] = []
        self._profile_error: ShieldApplyFailed | None = None

        self.profiles.add_listener(self._on_profile_changed)

    # -- persistence -------------------------------------------------------

    def _load_session(self) -> SessionState:
        is_blocking = bool(self.store.get(IS_BLOCKING_KEY, False))
        raw_start = self.store.get(SESSION_START_KEY)

        if not is_blocking:
            if raw_start is not None:
                logger.warning("Found a session start while not blocking, discarding it")
                self.store.delete(SESSION_START_KEY)
            return Idle()

        try:
            return Active(start_time=datetime.fromisoformat(raw_start))
        except (TypeError, ValueError):
            session = Active(start_time=self._clock())
            logger.warning(
                f"Blocking without a valid session start ({raw_start!r}), "
                f"resuming from {session.start_time.isoformat()}"
            )
            self._persist_session(session)
            return session

    def _persist_session(self, session: SessionState) -> None:
        with self.store.transaction():
            if isinstance(session, Active):
                self.store.set(IS_BLOCKING_KEY, True)
                self.store.set(SESSION_START_KEY, session.start_time.isoformat())
            else:
                self.store.set(IS_BLOCKING_KEY, False)
                self.store.delete(SESSION_START_KEY)

    # -- queries -----------------------------------------------------------

    @property
    def is_blocking(self) -> bool:
        return self.tracker.is_active

    @property
    def session(self) -> SessionState:
        return self.tracker.session

    @property
    def authorization(self) -> AuthorizationState:
        return self.gate.state

    def current_profile(self) -> Profile:
        return self.profiles.current()

    def elapsed_session(self, now: datetime | None = None) -> float:
        return self.tracker.elapsed_session(now or self._clock())

    def today_total(self, now: datetime | None = None) -> float:
        return self.tracker.today_total(now or self._clock())

    def status(self, now: datetime | None = None) -> EngineStatus:
        now = now or self._clock()
        session = self.tracker.session
        return EngineStatus(
            is_blocking=self.is_blocking,
            session_start_time=session.start_time if isinstance(session, Active) else None,
            elapsed_session=self.tracker.elapsed_session(now),
            today_total=self.tracker.today_total(now),
            profile=self.profiles.current(),
            authorization=self.gate.state,
            authorization_reason=self.gate.reason,
            shield_error=self.shield_error,
        )

    def add_listener(self, listener: StatusListener) -> None:
        """Registers a callback that receives a status snapshot after every change."""
        self._listeners.append(listener)

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.status()
        for listener in list(self._listeners):
            listener(snapshot)

    # -- shield ------------------------------------------------------------

    def _apply_shield(self, profile: Profile, blocking: bool) -> ShieldApplyFailed | None:
        try:
            self.shield.apply(profile.blocked_apps, profile.blocked_categories, blocking)
        except (ShieldError, OSError) as e:
            logger.error(f"Failed to apply blocking settings: {e}")
            self.shield_error = str(e)
            return ShieldApplyFailed(blocking, e)
        self.shield_error = None
        return None

    def retry_shield(self) -> None:
        """Applies the shield again for the current state and profile."""
        with self._lock:
            with self.store.transaction():
                self._refresh()
            error = self._apply_shield(self.profiles.current(), self.is_blocking)
            self._notify()
            if error:
                raise error

    def _on_profile_changed(self, previous: Profile | None, current: Profile) -> None:
        if not self.is_blocking:
            return
        logger.info(f"Active profile changed while blocking, shielding '{current.name}'")
        self._profile_error = self._apply_shield(current, True)

    # -- transitions -------------------------------------------------------

    def _refresh(self) -> None:
        """Re-reads the session from the store. Call inside a transaction."""
        self.tracker.session = self._load_session()

    def handle_tag(self, payload: str, now: datetime | None = None) -> bool:
        """
        Toggles blocking if `payload` is the tag phrase and returns the new
        blocking state.

        Raises WrongTag for any other payload and Unauthorized when blocking
        is not permitted; neither changes state. The new state is on disk
        before the shield is touched; if that write fails the error
        propagates and nothing changes. ShieldApplyFailed is raised after the
        toggle has been recorded.
        """
        with self._lock:
            if payload != self.tag_phrase:
                transition_log.warning(f"Wrong tag! Payload: {payload!r}")
                raise WrongTag(payload)

            now = now or self._clock()
            logger.info("Toggling block")
            previous = self.tracker.session
            try:
                with self.store.transaction():
                    self._refresh()
                    previous = self.tracker.session
                    if self.is_blocking:
                        elapsed = self._end_session(now)
                    else:
                        self._start_session(now)
            except BaseException:
                self.tracker.session = previous
                raise

            profile = self.profiles.current()
            if self.is_blocking:
                transition_log.info(f"Blocking started with profile '{profile.name}'")
            else:
                transition_log.info(f"Blocking stopped after {elapsed:.0f}s")

            # Clearing never depends on authorization
            error = self._apply_shield(profile, self.is_blocking)
            self._notify()
            if error:
                raise error
            return self.is_blocking

    def _start_session(self, now: datetime) -> None:
        if not self.gate.is_authorized():
            transition_log.warning("Not authorized to block apps")
            raise Unauthorized(self.gate.reason)

        session = self.tracker.start(now)
        self._persist_session(session)

    def _end_session(self, now: datetime) -> float:
        elapsed = self.tracker.commit_session(now)
        self._persist_session(Idle())
        return elapsed

    # -- tags --------------------------------------------------------------

    async def authorize(self) -> AuthorizationState:
        return await self.gate.request_authorization()

    async def scan(self, tag: TagAuthenticator, now: datetime | None = None) -> bool:
        """
        Reads a tag and toggles. Only one scan runs at a time; a second one
        is rejected with TransitionInProgress. Cancelling while waiting for the
        tag leaves the state untouched.
        """
        if self._scanning:
            raise TransitionInProgress("A scan is already in progress")

        self._scanning = True
        try:
            payload = await tag.scan()
            return self.handle_tag(payload, now)
        finally:
            self._scanning = False

    async def write_tag(self, tag: TagAuthenticator) -> None:
        """Programs `tag` with the tag phrase."""
        if not await tag.write(self.tag_phrase):
            raise WriteFailed("Failed to create tag. Please try again.")

    # -- profiles ----------------------------------------------------------

    def _run_profile_change(self, action: Callable[[], Profile | None]):
        with self._lock:
            with self.store.transaction():
                self._refresh()
            self._profile_error = None
            result = action()
            error, self._profile_error = self._profile_error, None
            self._notify()
            if error:
                raise error
            return result

    def add_profile(
        self,
        name: str,
        icon: str | None = None,
        blocked_apps: Iterable[str] = (),
        blocked_categories: Iterable[str] = (),
    ) -> Profile:
        return self._run_profile_change(
            lambda: self.profiles.add(name, icon, blocked_apps, blocked_categories)
        )

    def update_profile(
        self,
        profile_id: UUID | str,
        name: str | None = None,
        blocked_apps: Iterable[str] | None = None,
        blocked_categories: Iterable[str] | None = None,
        icon: str | None = None,
    ) -> Profile:
        return self._run_profile_change(
            lambda: self.profiles.update(
                profile_id, name, blocked_apps, blocked_categories, icon
            )
        )

    def delete_profile(self, profile_id: UUID | str) -> None:
        self._run_profile_change(lambda: self.profiles.delete(profile_id))

    def select_profile(self, profile_id: UUID | str) -> Profile:
        """Makes a profile current, re-shielding immediately if blocking."""
        return self._run_profile_change(lambda: self.profiles.set_current(profile_id))
