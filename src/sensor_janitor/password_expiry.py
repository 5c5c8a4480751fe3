"""!
@brief Password expiry arithmetic.
@details The expiry moment is the last password change plus the policy age in
whole days. Days remaining is the difference to *now* truncated toward zero,
so a password that expires later today still reports ``0`` days and is shown
as expired. Classification is presentational: ``expired`` at or below zero,
``warning`` at or below the warning window, ``normal`` above it.
"""
from __future__ import annotations

import datetime as _dt
import enum
from dataclasses import dataclass

from . import constants
from .identity import DirectoryUser


class ExpiryStatus(str, enum.Enum):
    NEVER_EXPIRES = "never_expires"
    UNKNOWN = "unknown"
    EXPIRED = "expired"
    WARNING = "warning"
    NORMAL = "normal"


@dataclass(frozen=True)
class ExpiryReport:
    user: DirectoryUser
    status: ExpiryStatus
    policy_age_days: int
    expires_at: _dt.datetime | None = None
    days_remaining: int | None = None


def _as_utc(moment: _dt.datetime) -> _dt.datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=_dt.timezone.utc)
    return moment.astimezone(_dt.timezone.utc)


def compute_expiry(last_change: _dt.datetime, policy_age_days: int) -> _dt.datetime:
    return _as_utc(last_change) + _dt.timedelta(days=policy_age_days)


def days_remaining(expires_at: _dt.datetime, now: _dt.datetime) -> int:
    """!
    @brief Whole days from ``now`` until ``expires_at``, truncated toward zero.
    """

    return int((_as_utc(expires_at) - _as_utc(now)) / _dt.timedelta(days=1))


def classify(remaining: int, *, warning_days: int = constants.PASSWORD_WARNING_DAYS) -> ExpiryStatus:
    if remaining <= 0:
        return ExpiryStatus.EXPIRED
    if remaining <= warning_days:
        return ExpiryStatus.WARNING
    return ExpiryStatus.NORMAL


def evaluate(
    user: DirectoryUser,
    *,
    policy_age_days: int = constants.PASSWORD_MAX_AGE_DAYS,
    now: _dt.datetime | None = None,
    warning_days: int = constants.PASSWORD_WARNING_DAYS,
) -> ExpiryReport:
    """!
    @brief Build the expiry report for ``user``.
    @param user Directory attributes for the account.
    @param policy_age_days Maximum password age configured in the directory.
    @param now Reference moment; defaults to the current UTC time.
    @param warning_days Upper bound (inclusive) of the warning window.
    @returns :class:`ExpiryReport`; ``expires_at``/``days_remaining`` are
    ``None`` for never-expiring or unknown passwords.
    """

    if policy_age_days <= 0:
        raise ValueError("policy_age_days must be positive")

    if user.password_never_expires:
        return ExpiryReport(user=user, status=ExpiryStatus.NEVER_EXPIRES, policy_age_days=policy_age_days)
    if user.last_password_change is None:
        return ExpiryReport(user=user, status=ExpiryStatus.UNKNOWN, policy_age_days=policy_age_days)

    reference = now or _dt.datetime.now(_dt.timezone.utc)
    expires_at = compute_expiry(user.last_password_change, policy_age_days)
    remaining = days_remaining(expires_at, reference)
    return ExpiryReport(
        user=user,
        status=classify(remaining, warning_days=warning_days),
        policy_age_days=policy_age_days,
        expires_at=expires_at,
        days_remaining=remaining,
    )


__all__ = [
    "ExpiryReport",
    "ExpiryStatus",
    "classify",
    "compute_expiry",
    "days_remaining",
    "evaluate",
]
