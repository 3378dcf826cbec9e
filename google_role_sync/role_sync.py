"""
Role sync logic: derive local account roles from Google group membership.

Two entry points react to social-login events:
  - user created: activate allow-listed accounts and assign initial roles
  - user login: drop stored roles and re-derive them from the directory,
    restoring the previous role set if that fails
"""

import enum
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .accounts import NO_ROLE, RoleId
from .events import USER_CREATED, USER_LOGIN

LOGGER = logging.getLogger(__name__)


class SyncStatus(enum.Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    # Failed, but the role set is back to what it was before
    FAILED_RESTORED = "failed_restored"
    FAILED_INCONSISTENT = "failed_inconsistent"


@dataclass(frozen=True)
class SyncResult:
    status: SyncStatus
    email: str
    roles_added: Tuple[RoleId, ...] = ()
    roles_removed: Tuple[RoleId, ...] = ()
    error: Optional[BaseException] = field(default=None, compare=False)

    @property
    def failed(self) -> bool:
        return self.status in (SyncStatus.FAILED_RESTORED, SyncStatus.FAILED_INCONSISTENT)


def email_domain(email: str) -> Optional[str]:
    """
    The segment after the first '@', up to the next one if any.
    'a@b@c.com' -> 'b'. Returns None when there is no '@'.
    """
    parts = email.split("@")
    if len(parts) < 2:
        return None
    return parts[1]


class RoleSyncHandler:
    def __init__(
        self,
        allowed_domain: str,
        role_assignment: Mapping[str, RoleId],
        credentials_loader: Callable[[], Optional[dict]],
        directory_factory: Callable[[dict], object],
        logger: Optional[logging.Logger] = None,
    ):
        self.allowed_domain = allowed_domain
        self.role_assignment = MappingProxyType(dict(role_assignment))
        self._credentials_loader = credentials_loader
        self._directory_factory = directory_factory
        self._logger = logger or LOGGER

    @staticmethod
    def get_subscribed_events() -> Dict[str, str]:
        return {
            USER_CREATED: "on_user_created",
            USER_LOGIN: "on_user_login",
        }

    def on_user_created(self, event) -> SyncResult:
        account = event.get_user()
        email = account.get_email()

        if email_domain(email) != self.allowed_domain:
            self._logger.debug("Not activating %s: domain not allowed", email)
            return SyncResult(SyncStatus.SKIPPED, email)

        account.activate(True)
        try:
            account.save()
        except Exception as e:
            self._logger.error("Could not activate user: %s", email, exc_info=True)
            # Active in memory but not persisted; roles untouched
            return SyncResult(SyncStatus.FAILED_INCONSISTENT, email, error=e)
        self._logger.info("Activated %s", email)

        added: List[RoleId] = []
        try:
            self.determine_roles(account, added)
        except Exception as e:
            self._logger.error(
                "There was an issue assigning roles to user: %s", email, exc_info=True
            )
            # Activation stands; any roles added before the failure stay too
            status = (
                SyncStatus.FAILED_INCONSISTENT if added else SyncStatus.FAILED_RESTORED
            )
            return SyncResult(status, email, roles_added=tuple(added), error=e)

        return SyncResult(SyncStatus.SUCCESS, email, roles_added=tuple(added))

    def on_user_login(self, event) -> SyncResult:
        account = event.get_user()
        email = account.get_email()
        previous = [role for role in account.get_roles() if role != NO_ROLE]

        removed: List[RoleId] = []
        added: List[RoleId] = []
        try:
            for role in previous:
                account.remove_role(role)
                account.save()
                removed.append(role)
            self.determine_roles(account, added)
        except Exception as e:
            self._logger.error(
                "There was an issue assigning roles to user: %s",
                account.get_display_name(),
                exc_info=True,
            )
            restored = self._restore_roles(account, previous, added)
            status = (
                SyncStatus.FAILED_RESTORED if restored else SyncStatus.FAILED_INCONSISTENT
            )
            return SyncResult(status, email, error=e)

        self._logger.info(
            "Synced roles for %s: removed=%s added=%s", email, removed, added
        )
        return SyncResult(
            SyncStatus.SUCCESS,
            email,
            roles_added=tuple(added),
            roles_removed=tuple(removed),
        )

    def determine_roles(self, account, added: Optional[List[RoleId]] = None) -> List[RoleId]:
        """
        Add a role for every directory group of the account that appears in
        the role assignment table, saving after each one.

        Does nothing when no credentials are configured. Roles are appended
        to ``added`` as they are applied so a caller still sees partial
        progress if this raises.
        """
        if added is None:
            added = []

        creds_info = self._credentials_loader()
        if not creds_info:
            self._logger.debug(
                "No directory credentials; skipping role sync for %s",
                account.get_email(),
            )
            return added

        directory = self._directory_factory(creds_info)
        for group in directory.list_user_groups(account.get_email()):
            role = self.role_assignment.get(group.get("name"))
            if role is None or role == NO_ROLE:
                continue
            account.add_role(role)
            added.append(role)
            account.save()

        return added

    def _restore_roles(
        self, account, previous: List[RoleId], partial: List[RoleId]
    ) -> bool:
        """
        Best-effort rollback to ``previous``. Every step is attempted even if
        an earlier one fails. Returns False if any step failed.
        """
        ok = True
        for role in partial:
            if role in previous:
                continue
            try:
                account.remove_role(role)
                account.save()
            except Exception:
                ok = False
                self._logger.error(
                    "Could not remove role %s from %s during restore",
                    role,
                    account.get_email(),
                    exc_info=True,
                )
        for role in previous:
            try:
                account.add_role(role)
                account.save()
            except Exception:
                ok = False
                self._logger.error(
                    "Could not restore role %s for %s",
                    role,
                    account.get_email(),
                    exc_info=True,
                )
        return ok
