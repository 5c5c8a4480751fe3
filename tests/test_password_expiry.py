"""!
@brief Tests for password expiry arithmetic and classification.
"""

from __future__ import annotations

import datetime as _dt
import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from sensor_janitor import password_expiry  # noqa: E402
from sensor_janitor.identity import DirectoryUser  # noqa: E402
from sensor_janitor.password_expiry import ExpiryStatus  # noqa: E402

UTC = _dt.timezone.utc
LAST_CHANGE = _dt.datetime(2026, 1, 10, 8, 30, tzinfo=UTC)


def _user(**overrides) -> DirectoryUser:
    values = {
        "user_principal_name": "alice@contoso.com",
        "display_name": "Alice",
        "enabled": True,
        "synced_from_on_prem": False,
        "last_password_change": LAST_CHANGE,
        "password_never_expires": False,
        "matched_by": "principal name",
    }
    values.update(overrides)
    return DirectoryUser(**values)


def test_expiry_is_last_change_plus_policy_age() -> None:
    report = password_expiry.evaluate(_user(), policy_age_days=90, now=LAST_CHANGE)

    assert report.expires_at == LAST_CHANGE + _dt.timedelta(days=90)
    assert report.days_remaining == 90
    assert report.status is ExpiryStatus.NORMAL


@pytest.mark.parametrize(
    "offset, remaining, status",
    [
        (_dt.timedelta(days=75), 15, ExpiryStatus.NORMAL),
        (_dt.timedelta(days=76), 14, ExpiryStatus.WARNING),
        (_dt.timedelta(days=89), 1, ExpiryStatus.WARNING),
        (_dt.timedelta(days=89, hours=12), 0, ExpiryStatus.EXPIRED),
        (_dt.timedelta(days=90), 0, ExpiryStatus.EXPIRED),
        (_dt.timedelta(days=95), -5, ExpiryStatus.EXPIRED),
    ],
)
def test_classification_boundaries(offset, remaining, status) -> None:
    report = password_expiry.evaluate(_user(), policy_age_days=90, now=LAST_CHANGE + offset)

    assert report.days_remaining == remaining
    assert report.status is status


def test_days_remaining_truncates_toward_zero() -> None:
    expires = _dt.datetime(2026, 4, 10, tzinfo=UTC)

    assert password_expiry.days_remaining(expires, expires - _dt.timedelta(days=2, hours=23)) == 2
    assert password_expiry.days_remaining(expires, expires + _dt.timedelta(days=2, hours=23)) == -2


def test_naive_datetimes_are_treated_as_utc() -> None:
    naive = LAST_CHANGE.replace(tzinfo=None)

    assert password_expiry.compute_expiry(naive, 30) == LAST_CHANGE + _dt.timedelta(days=30)


def test_never_expiring_password_has_no_date() -> None:
    report = password_expiry.evaluate(_user(password_never_expires=True))

    assert report.status is ExpiryStatus.NEVER_EXPIRES
    assert report.expires_at is None
    assert report.days_remaining is None


def test_missing_last_change_is_unknown() -> None:
    report = password_expiry.evaluate(_user(last_password_change=None))

    assert report.status is ExpiryStatus.UNKNOWN


def test_policy_age_must_be_positive() -> None:
    with pytest.raises(ValueError):
        password_expiry.evaluate(_user(), policy_age_days=0)
