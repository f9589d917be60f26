# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Login, logout and the single active session.

The leader check is a plaintext compare against the password fetched with the
rest of the state. Starting a session starts background polling; ending it
stops polling.
"""

from typing import Optional

from fieldservice.core.config import settings
from fieldservice.core.errors import RuleRefused, ValidationFailed
from fieldservice.core.logging import get_logger
from fieldservice.models.domain import Gender, Role, Session, Volunteer
from fieldservice.repositories.preferences_repository import PreferencesRepository
from fieldservice.repositories.roster_repository import RosterRepository
from fieldservice.services.sync_service import SyncService

logger = get_logger(__name__)


def leader_account() -> Volunteer:
    """Synthetic identity used for the leader role; not part of the roster."""
    return Volunteer(
        id=settings.LEADER_ACCOUNT_ID,
        name=settings.LEADER_DISPLAY_NAME,
        gender=Gender.BROTHER,
        can_do_public_witnessing=True,
    )


class SessionService:
    """Holds the active session for this client."""

    def __init__(
        self,
        roster_repo: RosterRepository,
        preferences_repo: PreferencesRepository,
        sync_service: SyncService,
    ) -> None:
        self._repo = roster_repo
        self._prefs = preferences_repo
        self._sync = sync_service
        self._session: Optional[Session] = None

    @property
    def current(self) -> Optional[Session]:
        return self._session

    @property
    def current_user_id(self) -> Optional[str]:
        return self._session.user.id if self._session else None

    # ── Commands ──

    async def login_volunteer(self, name: str) -> Session:
        """Look the volunteer up by exact name. Remembers the name on success."""
        self._require_loaded()
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValidationFailed("Please enter your name.")
        user = next((v for v in self._repo.volunteers.get_all() if v.name == trimmed), None)
        if user is None:
            raise RuleRefused("This name is not registered. Please ask a service leader.")
        self._prefs.set_remembered_name(trimmed)
        return self._begin(Session(user=user, role=Role.VOLUNTEER))

    async def login_leader(self, password: str) -> Session:
        self._require_loaded()
        if str(password) != str(self._repo.leader_password):
            raise RuleRefused("Incorrect password.")
        return self._begin(Session(user=leader_account(), role=Role.LEADER))

    async def logout(self) -> None:
        if self._session is not None:
            logger.info("Session ended: user=%s", self._session.user.id)
        self._session = None
        await self._sync.stop_polling()

    def _require_loaded(self) -> None:
        if not self._repo.loaded:
            raise RuleRefused("Data has not been loaded yet. Please reload and try again.")

    def _begin(self, session: Session) -> Session:
        self._session = session
        self._sync.start_polling()
        logger.info("Session started: user=%s, role=%s", session.user.id, session.role.value)
        return session

    # ── Remembered name ──

    def remembered_name(self) -> str:
        return self._prefs.get_remembered_name()

    def remember_name(self, name: str) -> None:
        self._prefs.set_remembered_name(name)
