#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Main entry point for Zone Console.
Sets up logging, wires the engine components together and runs the
command line front end.
"""

import sys
import os
import getpass
import locale
import logging
import argparse
from typing import List, Optional

from PySide6 import QtCore

from api_client import APIClient
from auth_session import AuthSession
from config_manager import ConfigManager
from credential_store import CredentialStore
from local_storage import LocalStorage
from record_parser import RecordLineParser
from template_store import TemplateStore
from view_controller import DomainsController, RecordsController
from view_state import LoadState
from workers import InlineThreadPool

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


def setup_logging(config_manager):
    """Log to a file in the config directory and to the console."""
    log_dir = config_manager.get_log_dir()
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, "zoneconsole.log")

    logging.basicConfig(
        level=logging.DEBUG if config_manager.get_debug_mode() else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


class Application:
    """The engine components for one configuration directory."""

    def __init__(self, config_manager, session=None, thread_pool=None):
        self.config_manager = config_manager
        self.storage = LocalStorage(config_manager.get_storage_file(), config_manager.get_storage_quota_bytes())
        self.credential_store = CredentialStore(self.storage, config_manager.get_credential_expiry_days())
        self.template_store = TemplateStore(self.storage)
        self.api_client = APIClient(config_manager, session)
        self.auth_session = AuthSession(self.api_client, self.credential_store)
        self.thread_pool = thread_pool or InlineThreadPool()

    def parser(self):
        return RecordLineParser(self.config_manager.get_strict_record_types(),
                                self.config_manager.get_validate_all_before_send())

    def _wire(self, controller):
        controller.notify.connect(lambda message, level: print(f"[{level}] {message}"))
        controller.report_ready.connect(lambda report: print("\n".join(report.to_lines())
                                                             if hasattr(report, "to_lines")
                                                             else report.summary_text()))
        self.auth_session.connect_controller(controller)
        return controller

    def domains_controller(self):
        return self._wire(DomainsController(self.api_client, self.config_manager,
                                            self.template_store, self.thread_pool))

    def records_controller(self, zone_name):
        return self._wire(RecordsController(self.api_client, self.config_manager, zone_name, self.thread_pool))

    def ensure_login(self, identifier=None):
        """Log in with a stored credential; returns False if none works."""
        success, message = self.auth_session.test_stored(identifier)
        print(message if success else f"Error: {message}", file=sys.stdout if success else sys.stderr)
        return success


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _print_items(view_state, columns: List[str], noun: str) -> None:
    for item in view_state.derived_view:
        print("  ".join(str(item.get(column, "")) for column in columns))
    print(view_state.status_text(noun))


def cmd_check_records(app: Application, args: argparse.Namespace) -> int:
    """Handle the 'check-records' command."""
    result = app.parser().parse(_read_text(args.file), args.proxied)
    for intent in result.intents:
        print(f"OK   {intent.type}|{intent.name}|{intent.content}|{str(intent.proxied).lower()}")
    for rejection in result.rejections:
        print(f"FAIL {rejection}")
    return 1 if result.blocks_submission else 0


def cmd_login(app: Application, args: argparse.Namespace) -> int:
    """Handle the 'login' command."""
    secret = args.api_key or getpass.getpass("API key: ")
    success, message = app.auth_session.login(args.email, secret, args.remember)
    print(message if success else f"Error: {message}")
    return 0 if success else 1


def cmd_credentials(app: Application, args: argparse.Namespace) -> int:
    """Handle the 'credentials' command."""
    store = app.credential_store
    if args.action == "list":
        credentials = store.all(most_recent_first=True)
        if not credentials:
            print("No stored credentials")
        for credential in credentials:
            print(f"{credential.identifier}  expires {credential.expires_at:%Y-%m-%d %H:%M} UTC")
        return 0
    if args.action == "forget":
        if not args.email:
            print("Error: an email is required", file=sys.stderr)
            return 1
        return 0 if store.delete(args.email) else 1
    return 0 if store.clear() else 1


def cmd_templates(app: Application, args: argparse.Namespace) -> int:
    """Handle the 'templates' command."""
    store = app.template_store
    if args.action == "list":
        for template in store.all():
            marker = " (default)" if template.is_default else ""
            print(f"{template.template_id}{marker}  {template.name}  {len(template.records)} DNS records")
        return 0
    if args.action == "show":
        template = store.get(args.target or "")
        if template is None:
            print(f"Error: template '{args.target}' not found", file=sys.stderr)
            return 1
        print(template.text)
        return 0
    if args.action == "add":
        template_id = store.save(args.name or "", _read_text(args.target).splitlines(), args.proxied)
        if template_id is None:
            print("Error: template not saved", file=sys.stderr)
            return 1
        print(f"Saved template '{template_id}'")
        return 0
    if args.action == "delete":
        return 0 if store.delete(args.target or "") else 1
    if args.action == "export":
        success, message = store.export_yaml(args.target)
    else:
        success, message = store.import_yaml(args.target)
    print(message)
    return 0 if success else 1


def cmd_domains(app: Application, args: argparse.Namespace) -> int:
    """Handle the 'domains' command."""
    if not app.ensure_login(args.account):
        return 1
    controller = app.domains_controller()
    if args.add:
        return 0 if controller.add_domains(_read_text(args.add), args.template) else 1

    controller.request_page(args.page, args.search or "")
    if args.filter:
        controller.apply_local_filter(search=args.filter)
    if args.sort:
        controller.apply_sort(args.sort, "desc" if args.desc else "asc")
    if controller.view_state.load_state is not LoadState.LOADED:
        return 1
    _print_items(controller.view_state, ["name", "status", "created_on"], "domains")
    return 0


def cmd_records(app: Application, args: argparse.Namespace) -> int:
    """Handle the 'records' command."""
    if not app.ensure_login(args.account):
        return 1
    controller = app.records_controller(args.zone)

    if args.apply:
        return 0 if controller.apply_records(_read_text(args.apply), args.proxied) else 1

    controller.request_page(args.page, args.search or "")
    if controller.view_state.load_state is not LoadState.LOADED:
        return 1
    controller.apply_local_filter(search=args.filter or "", record_type=args.type or "",
                                  proxied=args.only_proxied)
    if args.sort:
        controller.apply_sort(args.sort, "desc" if args.desc else "asc")

    if args.delete:
        visible = {str(item_id): item_id for item_id in controller.view_state.derived_ids()}
        for record_id in args.delete:
            if record_id not in visible or not controller.toggle_select(visible[record_id]):
                print(f"Warning: record {record_id} is not on this page", file=sys.stderr)
        return 0 if controller.bulk_delete() else 1

    _print_items(controller.view_state, ["id", "type", "name", "content", "proxied"], "records")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="zone-console",
        description="Manage DNS zones through the zone console backend",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config-dir", help="Directory holding config, storage and logs")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    check_parser = subparsers.add_parser("check-records", help="Validate bulk record lines without sending them")
    check_parser.add_argument("file", help="File with one TYPE|NAME|CONTENT[|PROXIED] line per record, - for stdin")
    check_parser.add_argument("--proxied", action="store_true", help="Default proxied flag for 3-field lines")
    check_parser.set_defaults(func=cmd_check_records)

    login_parser = subparsers.add_parser("login", help="Validate credentials against the backend")
    login_parser.add_argument("email", help="Account email")
    login_parser.add_argument("--api-key", help="API key (prompted when omitted)")
    login_parser.add_argument("--remember", action="store_true", help="Save the credential for 30 days")
    login_parser.set_defaults(func=cmd_login)

    credentials_parser = subparsers.add_parser("credentials", help="Manage stored credentials")
    credentials_parser.add_argument("action", choices=["list", "forget", "clear"])
    credentials_parser.add_argument("email", nargs="?", help="Account email for 'forget'")
    credentials_parser.set_defaults(func=cmd_credentials)

    templates_parser = subparsers.add_parser("templates", help="Manage DNS record templates")
    templates_parser.add_argument("action", choices=["list", "show", "add", "delete", "export", "import"])
    templates_parser.add_argument("target", nargs="?", help="Template id, or file path for add/export/import")
    templates_parser.add_argument("--name", help="Template name for 'add'")
    templates_parser.add_argument("--proxied", action="store_true", help="Default proxied flag for 'add'")
    templates_parser.set_defaults(func=cmd_templates)

    domains_parser = subparsers.add_parser("domains", help="List or add domains")
    domains_parser.add_argument("--account", help="Stored credential to use (most recent by default)")
    domains_parser.add_argument("--page", type=int, default=1)
    domains_parser.add_argument("--search", help="Server-side search")
    domains_parser.add_argument("--filter", help="Filter the loaded page")
    domains_parser.add_argument("--sort", choices=["name", "status", "created_on"])
    domains_parser.add_argument("--desc", action="store_true")
    domains_parser.add_argument("--add", metavar="FILE", help="Add the domains listed in FILE")
    domains_parser.add_argument("--template", help="Template applied to added domains")
    domains_parser.set_defaults(func=cmd_domains)

    records_parser = subparsers.add_parser("records", help="List, apply or delete records of a zone")
    records_parser.add_argument("zone", help="Zone name")
    records_parser.add_argument("--account", help="Stored credential to use (most recent by default)")
    records_parser.add_argument("--page", type=int, default=1)
    records_parser.add_argument("--search", help="Server-side search")
    records_parser.add_argument("--filter", help="Filter the loaded page")
    records_parser.add_argument("--type", help="Only show this record type")
    records_parser.add_argument("--only-proxied", type=lambda v: v.lower() == "true", default=None,
                                metavar="true|false")
    records_parser.add_argument("--sort", choices=["type", "name", "content", "proxied"])
    records_parser.add_argument("--desc", action="store_true")
    records_parser.add_argument("--apply", metavar="FILE", help="Apply bulk record lines from FILE")
    records_parser.add_argument("--proxied", action="store_true", help="Default proxied flag for 3-field lines")
    records_parser.add_argument("--delete", nargs="+", metavar="ID", help="Delete these records from the page")
    records_parser.set_defaults(func=cmd_records)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    config_manager = ConfigManager(args.config_dir)
    setup_logging(config_manager)
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.warning(f"Falling back to the C collation: {e}")

    app_instance = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication(sys.argv[:1])
    app_instance.setApplicationName("Zone Console")

    try:
        return args.func(Application(config_manager), args)
    except OSError as e:
        logger.error(f"Failed to read input: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
