"""!
@brief Plain console output for both tools.
@details The cleanup summary and the password-expiry report go to ``stdout``
and never into the audit log. Colour is applied only to the expiry status line
and can be disabled with ``--no-color``.
"""
from __future__ import annotations

import sys
from typing import TextIO

from .password_expiry import ExpiryReport, ExpiryStatus
from .summary import AuditSummary, render_report

_RESET = "\x1b[0m"
_STATUS_COLORS = {
    ExpiryStatus.EXPIRED: "\x1b[31m",
    ExpiryStatus.WARNING: "\x1b[33m",
    ExpiryStatus.NORMAL: "\x1b[32m",
}


def print_summary(summary: AuditSummary, *, stream: TextIO | None = None) -> None:
    out = stream or sys.stdout
    print(render_report(summary), file=out)


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _status_line(report: ExpiryReport) -> str:
    if report.status is ExpiryStatus.NEVER_EXPIRES:
        return "Password never expires"
    if report.status is ExpiryStatus.UNKNOWN:
        return "Password expiry unknown (no last password change recorded)"
    remaining = report.days_remaining or 0
    if report.status is ExpiryStatus.EXPIRED:
        return f"Password EXPIRED ({abs(remaining)} day(s) ago)" if remaining else "Password EXPIRED (today)"
    if report.status is ExpiryStatus.WARNING:
        return f"Password expires soon: {remaining} day(s) remaining"
    return f"Password expires in {remaining} day(s)"


def render_expiry_report(report: ExpiryReport, *, color: bool = False) -> str:
    """!
    @brief Render ``report`` as a short block of text.
    """

    user = report.user
    last_change = (
        user.last_password_change.strftime("%Y-%m-%d %H:%M:%S UTC") if user.last_password_change else "(none)"
    )
    lines = [
        f"User:                 {user.display_name or user.user_principal_name}",
        f"Principal name:       {user.user_principal_name}",
        f"Matched by:           {user.matched_by or '-'}",
        f"Account enabled:      {_yes_no(user.enabled)}",
        f"Synced from on-prem:  {_yes_no(user.synced_from_on_prem)}",
        f"Last password change: {last_change}",
        f"Policy max age:       {report.policy_age_days} day(s)",
    ]
    if report.expires_at is not None:
        lines.append(f"Expires:              {report.expires_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")

    status = _status_line(report)
    prefix = _STATUS_COLORS.get(report.status) if color else None
    lines.append(f"{prefix}{status}{_RESET}" if prefix else status)
    return "\n".join(lines)


def print_expiry_report(report: ExpiryReport, *, color: bool = False, stream: TextIO | None = None) -> None:
    out = stream or sys.stdout
    print(render_expiry_report(report, color=color), file=out)


__all__ = ["print_expiry_report", "print_summary", "render_expiry_report"]
