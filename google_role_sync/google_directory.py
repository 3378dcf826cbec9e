"""
Thin wrapper around Google Admin SDK Directory API.

Responsibilities:
- Authenticate via Service Account w/ Domain-Wide Delegation
- List the groups a user belongs to (paginated)
"""

import httplib2
import logging
from typing import List, Optional, Iterable

from google_auth_httplib2 import AuthorizedHttp
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import set_user_agent

from .config import GROUP_READONLY_SCOPE
from .utils import retry

LOGGER = logging.getLogger(__name__)


def is_retryable(error: BaseException) -> bool:
    """Quota and server-side errors only; 404 and 403 fail on the first try."""
    status = getattr(getattr(error, "resp", None), "status", None)
    if status is None:
        return False
    status = int(status)
    return status == 429 or status >= 500


class GoogleDirectory:
    def __init__(
        self,
        creds_info: dict,
        delegated_subject: str,
        google_api_scopes: Optional[Iterable[str]] = None,
        http_timeout: float = 30.0,
        application_name: Optional[str] = None,
    ):
        """
        :param creds_info: service account json (dict)
        :param delegated_subject: admin email to impersonate
        :param google_api_scopes: defaults to read-only group access
        """
        scopes = list(google_api_scopes or [GROUP_READONLY_SCOPE])
        creds = service_account.Credentials.from_service_account_info(
            creds_info, scopes=scopes
        )
        delegated = creds.with_subject(delegated_subject)

        base_http = httplib2.Http(timeout=http_timeout)
        authed_http = AuthorizedHttp(delegated, http=base_http)
        if application_name:
            authed_http = set_user_agent(authed_http, application_name)

        # cache_discovery=False avoids file writes in some environments
        self._svc = build(
            "admin", "directory_v1", http=authed_http, cache_discovery=False
        )
        self._num_retries = 3
        self.application_name = application_name
        LOGGER.debug(
            "Directory client ready (subject=%s, app=%s)",
            delegated_subject,
            application_name,
        )

    @retry((HttpError,), tries=5, should_retry=is_retryable)
    def _groups_list(self, user_key: str, page_token: Optional[str] = None):
        return (
            self._svc.groups()
            .list(userKey=user_key, pageToken=page_token, maxResults=200)
            .execute(num_retries=self._num_retries)
        )

    def list_user_groups(self, user_key: str) -> List[dict]:
        """
        Returns every group record the user is a direct member of.
        An unknown user yields an empty list.
        """
        groups: List[dict] = []
        next_token: Optional[str] = None

        while True:
            try:
                resp = self._groups_list(user_key, page_token=next_token)
            except HttpError as e:
                if e.resp.status == 404:
                    LOGGER.info("User %s not found in directory", user_key)
                    return []
                LOGGER.error("Failed to list groups for %s: %s", user_key, e)
                raise

            groups.extend(resp.get("groups", []))

            next_token = resp.get("nextPageToken")
            if not next_token:
                break

        LOGGER.info("User %s is a member of %d group(s)", user_key, len(groups))
        return groups

    def list_user_group_names(self, user_key: str) -> List[str]:
        return [g["name"] for g in self.list_user_groups(user_key) if g.get("name")]
