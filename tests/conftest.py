"""Shared test fixtures and helpers."""

from typing import Dict, List, Optional
from unittest.mock import Mock

import pytest

from google_role_sync.accounts import Account
from google_role_sync.role_sync import RoleSyncHandler

ROLE_TABLE = {
    "Author Group Name": "author",
    "Editor Group Name": "editor",
    "Publisher Group Name": "publisher",
}

CREDS = {"type": "service_account", "client_email": "sa@example.iam.gserviceaccount.com"}


class RecordingAccount(Account):
    """Account that records every call made against it."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls: List[tuple] = []

    def activate(self, status=True):
        self.calls.append(("activate", status))
        super().activate(status)

    def save(self):
        self.calls.append(("save",))
        super().save()

    def add_role(self, role):
        self.calls.append(("add_role", role))
        super().add_role(role)

    def remove_role(self, role):
        self.calls.append(("remove_role", role))
        super().remove_role(role)


def make_directory(groups: Optional[List[str]] = None, error: Exception = None) -> Mock:
    directory = Mock()
    if error is not None:
        directory.list_user_groups.side_effect = error
    else:
        directory.list_user_groups.return_value = [{"name": g} for g in (groups or [])]
    return directory


def make_handler(
    directory: Optional[Mock] = None,
    creds: Optional[dict] = CREDS,
    role_assignment: Optional[Dict[str, str]] = None,
    allowed_domain: str = "your_domain.com",
    logger=None,
):
    factory = Mock(return_value=directory if directory is not None else make_directory())
    loader = Mock(return_value=creds)
    handler = RoleSyncHandler(
        allowed_domain=allowed_domain,
        role_assignment=role_assignment if role_assignment is not None else ROLE_TABLE,
        credentials_loader=loader,
        directory_factory=factory,
        logger=logger,
    )
    return handler, factory, loader


@pytest.fixture
def account():
    return RecordingAccount(email="jane@your_domain.com", display_name="Jane Doe")
