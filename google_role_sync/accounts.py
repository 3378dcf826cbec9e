"""
Local account store.

Accounts are kept in a single JSON file keyed by email:
{ email: {"display_name": ..., "roles": [...], "active": bool}, ... }
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

LOGGER = logging.getLogger(__name__)

RoleId = Union[str, int]

# Placeholder meaning "no role"; never added or removed.
NO_ROLE = 0


@dataclass
class Account:
    email: str
    display_name: str = ""
    roles: List[RoleId] = field(default_factory=list)
    active: bool = False
    store: Optional["JsonAccountStore"] = field(
        default=None, repr=False, compare=False
    )

    def activate(self, status: bool = True) -> None:
        self.active = bool(status)

    def save(self) -> None:
        if self.store is not None:
            self.store.persist(self)

    def get_roles(self) -> List[RoleId]:
        return list(self.roles)

    def add_role(self, role: RoleId) -> None:
        if role not in self.roles:
            self.roles.append(role)

    def remove_role(self, role: RoleId) -> None:
        if role in self.roles:
            self.roles.remove(role)

    def get_email(self) -> str:
        return self.email

    def get_display_name(self) -> str:
        return self.display_name or self.email.split("@")[0]

    def to_dict(self) -> dict:
        return {
            "display_name": self.display_name,
            "roles": list(self.roles),
            "active": self.active,
        }


class JsonAccountStore:
    def __init__(self, path: str):
        self.path = path
        self._accounts: Dict[str, Account] = {}
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            LOGGER.debug("Account store %s does not exist yet", self.path)
            return
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        for email, record in data.items():
            self._accounts[email] = Account(
                email=email,
                display_name=record.get("display_name", ""),
                roles=list(record.get("roles", [])),
                active=bool(record.get("active", False)),
                store=self,
            )
        LOGGER.debug("Loaded %d account(s) from %s", len(self._accounts), self.path)

    def get(self, email: str) -> Optional[Account]:
        return self._accounts.get(email)

    def create(self, email: str, display_name: Optional[str] = None) -> Account:
        if email in self._accounts:
            raise ValueError(f"Account {email} already exists.")
        account = Account(email=email, display_name=display_name or "", store=self)
        self._accounts[email] = account
        self.persist(account)
        LOGGER.info("Created account %s", email)
        return account

    def persist(self, account: Account) -> None:
        """
        Write the whole store. The file is replaced atomically so a reader
        never sees a half-written document.
        """
        self._accounts[account.email] = account
        data = {email: acc.to_dict() for email, acc in self._accounts.items()}

        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".accounts-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
