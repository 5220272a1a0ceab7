"""
Profile storage.

A profile is a named set of blocked apps and categories. Exactly one profile
is current at any time, and the store never becomes empty: the first load
seeds a default profile and the last remaining profile cannot be deleted.

The key-value store is the only copy of the profiles; this class parses it
on demand, so a write that fails and is rolled back there leaves nothing
stale here.
"""

from collections.abc import Callable, Iterable
from uuid import UUID, uuid4

from loguru import logger
from pydantic import ValidationError

from frick.errors import InvalidInput, LastProfile, NotFound
from frick.schema import Profile
from frick.settings import settings
from frick.store import KeyValueStore

PROFILES_KEY = "profiles"
CURRENT_PROFILE_KEY = "currentProfileId"

ProfileListener = Callable[[Profile | None, Profile], None]


def _clean_name(name: str) -> str:
    cleaned = name.strip() if name is not None else ""
    if not cleaned:
        raise InvalidInput("Profile name cannot be empty")
    return cleaned


def _index_of(profiles: list[Profile], profile_id: UUID | str) -> int:
    key = str(profile_id)
    for i, p in enumerate(profiles):
        if str(p.id) == key:
            return i
    raise NotFound(profile_id)


class ProfileStore:
    """Owns the profile collection and which profile is current."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._listeners: list[ProfileListener] = []
        self._parsed_from: tuple[object, object] | None = None
        self._parsed: tuple[list[Profile], UUID | None] = ([], None)
        with self.store.transaction():
            self._ensure_valid()

    def _read(self) -> tuple[list[Profile], UUID | None]:
        """Profiles and current id as stored. The current id is None if it is unusable."""
        raw_profiles = self.store.get(PROFILES_KEY)
        raw_current = self.store.get(CURRENT_PROFILE_KEY)
        if self._parsed_from is not None and (
            self._parsed_from[0] is raw_profiles and self._parsed_from[1] == raw_current
        ):
            return list(self._parsed[0]), self._parsed[1]

        profiles = []
        seen = set()
        for raw in raw_profiles or []:
            try:
                profile = Profile.model_validate(raw)
            except ValidationError as e:
                logger.error(f"Skipping unreadable profile: {e}")
                continue
            if profile.id in seen:
                logger.warning(f"Skipping duplicate profile id {profile.id}")
                continue
            seen.add(profile.id)
            profiles.append(profile)

        try:
            current_id = UUID(raw_current) if raw_current else None
        except (TypeError, ValueError):
            current_id = None
        if current_id not in seen:
            current_id = None

        self._parsed_from = (raw_profiles, raw_current)
        self._parsed = (profiles, current_id)
        return list(profiles), current_id

    def _write(self, profiles: list[Profile], current_id: UUID) -> None:
        with self.store.transaction():
            self.store.set(PROFILES_KEY, [p.model_dump(mode="json") for p in profiles])
            self.store.set(CURRENT_PROFILE_KEY, str(current_id))

    def _ensure_valid(self) -> tuple[list[Profile], UUID]:
        """Seeds the default profile or repairs the current id. Call inside a transaction."""
        profiles, current_id = self._read()
        if not profiles:
            default = Profile(
                name=settings.default_profile_name,
                icon=settings.default_profile_icon,
            )
            logger.info(f"No profiles found, creating default profile '{default.name}'")
            profiles, current_id = [default], default.id
            self._write(profiles, current_id)
        elif current_id is None:
            logger.warning("Current profile missing, falling back to the first profile")
            current_id = profiles[0].id
            self._write(profiles, current_id)
        return profiles, current_id

    def _notify(self, previous: Profile | None, current: Profile) -> None:
        for listener in list(self._listeners):
            listener(previous, current)

    def add_listener(self, listener: ProfileListener) -> None:
        """
        Registers a callback run whenever the current profile changes,
        either by selection, by deletion of the current profile, or by an
        update to the current profile's contents. The callback receives the
        previous and the new current profile, after the change is on disk.
        """
        self._listeners.append(listener)

    @property
    def profiles(self) -> list[Profile]:
        return self._read()[0]

    @property
    def current_id(self) -> UUID:
        return self._read()[1]

    def get(self, profile_id: UUID | str) -> Profile:
        profiles = self.profiles
        return profiles[_index_of(profiles, profile_id)]

    def current(self) -> Profile:
        return self.get(self.current_id)

    def add(
        self,
        name: str,
        icon: str | None = None,
        blocked_apps: Iterable[str] = (),
        blocked_categories: Iterable[str] = (),
    ) -> Profile:
        """Appends a new profile with a fresh id. The current profile is unchanged."""
        name = _clean_name(name)
        with self.store.transaction():
            profiles, current_id = self._ensure_valid()
            used = {p.id for p in profiles}
            new_id = uuid4()
            while new_id in used:
                new_id = uuid4()

            profile = Profile(
                id=new_id,
                name=name,
                icon=icon or settings.default_profile_icon,
                blocked_apps=frozenset(blocked_apps),
                blocked_categories=frozenset(blocked_categories),
            )
            self._write(profiles + [profile], current_id)

        logger.info(f"Added profile '{profile.name}' ({profile.id})")
        return profile

    def update(
        self,
        profile_id: UUID | str,
        name: str | None = None,
        blocked_apps: Iterable[str] | None = None,
        blocked_categories: Iterable[str] | None = None,
        icon: str | None = None,
    ) -> Profile:
        """Replaces the given fields of a profile. Nothing changes if validation fails."""
        changes = {}
        if name is not None:
            changes["name"] = _clean_name(name)
        if icon is not None:
            changes["icon"] = icon
        if blocked_apps is not None:
            changes["blocked_apps"] = frozenset(blocked_apps)
        if blocked_categories is not None:
            changes["blocked_categories"] = frozenset(blocked_categories)

        with self.store.transaction():
            profiles, current_id = self._ensure_valid()
            index = _index_of(profiles, profile_id)
            existing = profiles[index]
            updated = existing.model_copy(update=changes)
            profiles[index] = updated
            self._write(profiles, current_id)

        logger.info(f"Updated profile '{updated.name}' ({updated.id})")
        if updated.id == current_id and updated != existing:
            self._notify(existing, updated)
        return updated

    def delete(self, profile_id: UUID | str) -> None:
        """
        Removes a profile. Deleting the current profile makes the first
        remaining profile current. The last profile cannot be deleted.
        """
        with self.store.transaction():
            profiles, current_id = self._ensure_valid()
            if len(profiles) == 1:
                raise LastProfile()
            removed = profiles.pop(_index_of(profiles, profile_id))
            was_current = removed.id == current_id
            if was_current:
                current_id = profiles[0].id
            self._write(profiles, current_id)

        logger.info(f"Deleted profile '{removed.name}' ({removed.id})")
        if was_current:
            self._notify(removed, profiles[0])

    def set_current(self, profile_id: UUID | str) -> Profile:
        """Makes `profile_id` the current profile. Re-selecting it is a no-op."""
        with self.store.transaction():
            profiles, current_id = self._ensure_valid()
            profile = profiles[_index_of(profiles, profile_id)]
            if profile.id == current_id:
                return profile
            previous = profiles[_index_of(profiles, current_id)]
            self._write(profiles, profile.id)

        logger.info(f"Switched to profile '{profile.name}'")
        self._notify(previous, profile)
        return profile
