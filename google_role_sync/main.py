import argparse
import logging
import sys
from typing import List, Optional

from .accounts import JsonAccountStore
from .config import Config
from .events import USER_CREATED, USER_LOGIN, EventDispatcher, UserEvent
from .google_directory import GoogleDirectory
from .role_sync import RoleSyncHandler, SyncResult
from .utils import setup_logging

LOGGER = logging.getLogger(__name__)


def build_google_directory(cfg: Config, creds_info: dict) -> GoogleDirectory:
    return GoogleDirectory(
        creds_info=creds_info,
        delegated_subject=cfg.delegated_subject,
        google_api_scopes=cfg.gauth_scopes,
        application_name=cfg.application_name,
    )


def build_handler(cfg: Config) -> RoleSyncHandler:
    return RoleSyncHandler(
        allowed_domain=cfg.allowed_domain,
        role_assignment=cfg.role_assignment,
        credentials_loader=cfg.get_service_account_info,
        directory_factory=lambda creds_info: build_google_directory(cfg, creds_info),
        logger=logging.getLogger("google_role_sync"),
    )


def build_dispatcher(cfg: Config) -> EventDispatcher:
    dispatcher = EventDispatcher()
    dispatcher.add_subscriber(build_handler(cfg))
    return dispatcher


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="google-role-sync",
        description="Sync local account roles from Google Workspace groups.",
    )
    parser.add_argument("--store", help="JSON account store (default: $ACCOUNT_STORE)")
    parser.add_argument("--log-level", help="Log level (default: $LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    created = sub.add_parser("created", help="Create an account and assign roles")
    created.add_argument("email")
    created.add_argument("--name", help="Display name")

    login = sub.add_parser("login", help="Re-derive roles for an existing account")
    login.add_argument("email")

    return parser.parse_args(argv)


def format_result(result: SyncResult) -> str:
    roles = ",".join(str(r) for r in result.roles_added) or "-"
    line = f"{result.status.value} {result.email} roles={roles}"
    if result.error is not None:
        line += f" error={result.error}"
    return line


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        cfg = Config.load()
        setup_logging(args.log_level or cfg.log_level, cfg.log_file)
        LOGGER.info("Configuration loaded successfully")

        store = JsonAccountStore(args.store or cfg.account_store_path)
        dispatcher = build_dispatcher(cfg)

        if args.command == "created":
            account = store.create(args.email, display_name=args.name)
            results = dispatcher.dispatch(USER_CREATED, UserEvent(account))
        else:
            account = store.get(args.email)
            if account is None:
                raise ValueError(f"Unknown account: {args.email}")
            results = dispatcher.dispatch(USER_LOGIN, UserEvent(account))

    except Exception as e:
        print(f"An error occurred: {e}")
        return 1

    for result in results:
        print(format_result(result))
    if any(r.failed for r in results):
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
