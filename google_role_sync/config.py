"""
Central configuration.
Reads environment variables once and exposes a simple dataclass.
"""

import json
import os
from dotenv import load_dotenv
from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional, List, Mapping
from google.cloud import secretmanager


load_dotenv()

GROUP_READONLY_SCOPE = "https://www.googleapis.com/auth/admin.directory.group.readonly"

DEFAULT_ROLE_ASSIGNMENT = {
    "Author Group Name": "author",
    "Editor Group Name": "editor",
    "Publisher Group Name": "publisher",
}

# Relative to the deployment root, outside the served directory
DEFAULT_KEY_FILE = os.path.join("..", "files-private", "googleAuth_key.json")


def parse_role_assignment(raw: object) -> Mapping[str, str]:
    """
    Validate a group name -> role id object and freeze it.
    """
    if not isinstance(raw, dict):
        raise ValueError("Role assignment must be a JSON object of group -> role.")
    table = {}
    for group_name, role in raw.items():
        if not isinstance(group_name, str) or not group_name.strip():
            raise ValueError(f"Invalid group name in role assignment: {group_name!r}")
        if not isinstance(role, str) or not role.strip():
            raise ValueError(
                f"Invalid role for group {group_name!r} in role assignment: {role!r}"
            )
        table[group_name] = role.strip()
    return MappingProxyType(table)


def _load_role_assignment() -> Mapping[str, str]:
    inline = os.getenv("ROLE_ASSIGNMENT", "").strip()
    path = os.getenv("ROLE_ASSIGNMENT_FILE", "").strip()
    if inline:
        return parse_role_assignment(json.loads(inline))
    if path:
        with open(path, "r", encoding="utf-8") as f:
            return parse_role_assignment(json.load(f))
    return parse_role_assignment(DEFAULT_ROLE_ASSIGNMENT)


@dataclass(frozen=True)
class Config:
    delegated_subject: str
    allowed_domain: str
    role_assignment: Mapping[str, str]
    log_level: str
    log_file: Optional[str]
    deploy_root: str
    account_store_path: str
    service_account_json_path: Optional[str]
    service_account_json_inline: Optional[str]
    service_account_secret_manager: bool
    gauth_secret_key_id: Optional[str]
    gauth_secret_ver: Optional[str]
    gauth_secret_type: Optional[str]
    gauth_scopes: List[str]
    gauth_project_id: Optional[str]
    application_name: str

    @staticmethod
    def load() -> "Config":
        config = Config(
            delegated_subject=os.getenv("GAUTH_GOOGLE_DELEGATED_SUBJECT", "").strip(),
            allowed_domain=os.getenv("ALLOWED_DOMAIN", "").strip(),
            role_assignment=_load_role_assignment(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("LOG_FILE", "").strip() or None,
            deploy_root=os.getenv("DEPLOY_ROOT", "").strip() or os.getcwd(),
            account_store_path=os.getenv("ACCOUNT_STORE", "").strip()
            or "accounts.json",
            service_account_json_path=os.getenv(
                "GOOGLE_APPLICATION_CREDENTIALS", ""
            ).strip()
            or None,
            service_account_json_inline=os.getenv("SERVICE_ACCOUNT_JSON", "").strip()
            or None,
            service_account_secret_manager=os.getenv(
                "SERVICE_ACCOUNT_SECRET_MANAGER", "false"
            )
            .strip()
            .lower()
            == "true",
            gauth_secret_key_id=os.getenv("GAUTH_SECRET_KEY_ID", "").strip() or None,
            gauth_secret_ver=os.getenv("GAUTH_SECRET_VER", "").strip() or None,
            gauth_secret_type=os.getenv("GAUTH_SECRET_TYPE", "").strip() or None,
            gauth_scopes=(
                [s.strip() for s in os.getenv("GAUTH_SCOPES", "").split(",") if s.strip()]
                or [GROUP_READONLY_SCOPE]
            ),
            gauth_project_id=os.getenv("GAUTH_PROJECT_ID", "").strip() or None,
            application_name=os.getenv(
                "GAUTH_APPLICATION_NAME", "Get a Users Groups"
            ).strip(),
        )
        config.validate()
        return config

    @property
    def key_file_location(self) -> str:
        if self.service_account_json_path:
            return self.service_account_json_path
        return os.path.normpath(os.path.join(self.deploy_root, DEFAULT_KEY_FILE))

    def load_credential_from_secret_manager(self, p_id, key, ver, type="json"):
        client = secretmanager.SecretManagerServiceClient()
        secret_key_name = f"projects/{p_id}/secrets/{key}/versions/{ver}"
        response = client.access_secret_version(request={"name": secret_key_name})

        if type == "json":
            return json.loads(response.payload.data.decode("UTF-8"))
        else:
            return response.payload.data.decode("UTF-8")

    def get_service_account_info(self) -> Optional[dict]:
        """
        Returns the service account JSON content from the key file, inline env
        or Secret Manager, checked in that order and re-read on every call.
        Returns None when no credentials are configured; role sync is then
        disabled rather than failing.
        """
        path = self.key_file_location
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        if self.service_account_json_inline:
            return json.loads(self.service_account_json_inline)
        if self.service_account_secret_manager:
            return self.load_credential_from_secret_manager(
                self.gauth_project_id,
                self.gauth_secret_key_id,
                self.gauth_secret_ver,
                self.gauth_secret_type or "json",
            )
        return None

    def validate(self) -> None:
        if not self.delegated_subject:
            raise ValueError(
                "Config is missing; GAUTH_GOOGLE_DELEGATED_SUBJECT is required."
            )
        if not self.allowed_domain:
            raise ValueError("Config is missing; ALLOWED_DOMAIN is required.")
        if "@" in self.allowed_domain:
            raise ValueError(
                f"ALLOWED_DOMAIN must be a bare domain, got {self.allowed_domain!r}."
            )
        if self.service_account_secret_manager and (
            not self.gauth_project_id
            or not self.gauth_secret_key_id
            or not self.gauth_secret_ver
        ):
            raise ValueError(
                "Service account secret manager requires GAUTH_PROJECT_ID, "
                "GAUTH_SECRET_KEY_ID, and GAUTH_SECRET_VER to be set."
            )
