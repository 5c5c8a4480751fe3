"""!
@brief Entry point for the ``password-expiry`` lookup CLI.
@details Looks a single user up in the directory and prints when their
password expires under the configured maximum age. Credentials come from the
``AZURE_TENANT_ID``/``AZURE_CLIENT_ID``/``AZURE_CLIENT_SECRET`` environment
variables; the tenant and client id may also be given on the command line.
"""
from __future__ import annotations

import argparse
import json
import os
import pathlib
import sys
from typing import Iterable, Mapping, Optional

from . import constants, identity, logging_ext, password_expiry, ui, version

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NOT_FOUND = 2

MAX_AGE_ENV = "PASSWORD_MAX_AGE_DAYS"


def _default_max_age(env: Mapping[str, str]) -> int:
    raw = env.get(MAX_AGE_ENV, "").strip()
    if not raw:
        return constants.PASSWORD_MAX_AGE_DAYS
    try:
        value = int(raw)
    except ValueError:
        return constants.PASSWORD_MAX_AGE_DAYS
    return value if value > 0 else constants.PASSWORD_MAX_AGE_DAYS


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be positive")
    return parsed


def build_arg_parser(env: Mapping[str, str] | None = None) -> argparse.ArgumentParser:
    environment = os.environ if env is None else env
    parser = argparse.ArgumentParser(
        prog="password-expiry",
        description="Show when a directory user's password expires.",
    )
    parser.add_argument("-V", "--version", action="version", version=version.__version__)
    parser.add_argument("username", help="Principal name, account name or email address.")
    parser.add_argument(
        "--max-age-days",
        type=_positive_int,
        default=_default_max_age(environment),
        help=f"Password policy maximum age (default {constants.PASSWORD_MAX_AGE_DAYS} or ${MAX_AGE_ENV}).",
    )
    parser.add_argument("--tenant-id", default=environment.get("AZURE_TENANT_ID", ""), help="Directory tenant id.")
    parser.add_argument("--client-id", default=environment.get("AZURE_CLIENT_ID", ""), help="Application client id.")
    parser.add_argument("--timeout", type=float, default=30.0, help="HTTP timeout in seconds.")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON.")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI color codes.")
    parser.add_argument("--logdir", metavar="DIR", help="Also write audit and JSONL logs to DIR.")
    return parser


def _report_payload(report: password_expiry.ExpiryReport) -> dict[str, object]:
    user = report.user
    return {
        "user_principal_name": user.user_principal_name,
        "display_name": user.display_name,
        "matched_by": user.matched_by,
        "enabled": user.enabled,
        "synced_from_on_prem": user.synced_from_on_prem,
        "last_password_change": user.last_password_change.isoformat() if user.last_password_change else None,
        "password_never_expires": user.password_never_expires,
        "policy_age_days": report.policy_age_days,
        "expires_at": report.expires_at.isoformat() if report.expires_at else None,
        "days_remaining": report.days_remaining,
        "status": report.status.value,
    }


def _lookup(args: argparse.Namespace, client: identity.GraphDirectoryClient | None) -> identity.DirectoryUser:
    if client is None:
        client = identity.GraphDirectoryClient(
            args.tenant_id,
            args.client_id,
            os.environ.get("AZURE_CLIENT_SECRET", ""),
            timeout=args.timeout,
        )
    return client.find_user(args.username)


def main(argv: Optional[Iterable[str]] = None, *, client: identity.GraphDirectoryClient | None = None) -> int:
    """!
    @brief Run the lookup.
    @param argv Argument list override.
    @param client Directory client override; built from credentials when
    omitted.
    @returns ``0`` with a report, ``2`` when the user does not exist, ``1`` on
    any other failure.
    """

    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.logdir:
        human_log, machine_log = logging_ext.setup_logging(pathlib.Path(args.logdir).expanduser(), echo=False)
    else:
        human_log = logging_ext.setup_console_logging()
        machine_log = logging_ext.get_machine_logger()

    try:
        try:
            user = _lookup(args, client)
        except identity.UserNotFoundError as exc:
            human_log.error("%s", exc)
            machine_log.warning("user_not_found", extra={"event": "user_not_found", "username": args.username})
            return EXIT_NOT_FOUND
        except identity.DirectoryError as exc:
            human_log.error("Directory lookup failed: %s", exc)
            machine_log.error("directory_error", extra={"event": "directory_error", "error": str(exc)})
            return EXIT_FAILURE

        report = password_expiry.evaluate(user, policy_age_days=args.max_age_days)
        payload = _report_payload(report)
        human_log.info("Password status for %s: %s", user.user_principal_name, report.status.value)
        machine_log.info("password_expiry", extra={"event": "password_expiry", "report": payload})

        if args.json:
            print(json.dumps(payload, indent=2))
        else:
            color = not args.no_color and bool(getattr(sys.stdout, "isatty", None) and sys.stdout.isatty())
            ui.print_expiry_report(report, color=color)
        return EXIT_OK
    finally:
        logging_ext.shutdown_logging()


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
