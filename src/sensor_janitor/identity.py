"""!
@brief Directory lookups against Microsoft Graph.
@details Resolves a single user for the password-expiry report. The username
is tried as the user principal name, then as the on-premises account name,
then as the mail address; the first attribute that yields a user wins.
Authentication uses the OAuth2 client-credentials grant. HTTP goes through
:mod:`urllib.request`; failures surface as :class:`DirectoryError`.
"""
from __future__ import annotations

import datetime as _dt
import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

from . import constants, logging_ext, version

LOOKUP_ATTRIBUTES: Tuple[Tuple[str, str], ...] = (
    ("userPrincipalName", "principal name"),
    ("onPremisesSamAccountName", "account name"),
    ("mail", "email"),
)
"""!
@brief Graph attributes tried in order, with a label for reporting.
"""

USER_FIELDS = (
    "id",
    "displayName",
    "userPrincipalName",
    "accountEnabled",
    "onPremisesSyncEnabled",
    "lastPasswordChangeDateTime",
    "passwordPolicies",
)

NEVER_EXPIRES_POLICY = "DisablePasswordExpiration"


class DirectoryError(RuntimeError):
    """!
    @brief Raised when the directory cannot be queried.
    """


class UserNotFoundError(DirectoryError):
    """!
    @brief Raised when no attribute matches the requested username.
    """


@dataclass(frozen=True)
class DirectoryUser:
    """!
    @brief User attributes relevant to password expiry.
    """

    user_principal_name: str
    display_name: str
    enabled: bool
    synced_from_on_prem: bool
    last_password_change: _dt.datetime | None
    password_never_expires: bool
    matched_by: str = ""


def parse_timestamp(value: object) -> _dt.datetime | None:
    """!
    @brief Parse a Graph ISO-8601 timestamp into an aware UTC datetime.
    @details Graph emits ``Z`` suffixes and up to seven fractional digits,
    neither of which older :meth:`datetime.fromisoformat` accepts.
    """

    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    if "." in text:
        head, _, tail = text.partition(".")
        digits = ""
        while tail and tail[0].isdigit():
            digits, tail = digits + tail[0], tail[1:]
        text = f"{head}.{digits[:6].ljust(6, '0')}{tail}"
    try:
        moment = _dt.datetime.fromisoformat(text)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=_dt.timezone.utc)
    return moment.astimezone(_dt.timezone.utc)


def user_from_payload(payload: Mapping[str, Any], matched_by: str = "") -> DirectoryUser:
    policies = str(payload.get("passwordPolicies") or "")
    return DirectoryUser(
        user_principal_name=str(payload.get("userPrincipalName") or ""),
        display_name=str(payload.get("displayName") or ""),
        enabled=bool(payload.get("accountEnabled")),
        synced_from_on_prem=bool(payload.get("onPremisesSyncEnabled")),
        last_password_change=parse_timestamp(payload.get("lastPasswordChangeDateTime")),
        password_never_expires=NEVER_EXPIRES_POLICY.lower() in policies.lower(),
        matched_by=matched_by,
    )


def _odata_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class GraphDirectoryClient:
    """!
    @brief Minimal Microsoft Graph client for user lookups.
    @param tenant_id Directory (tenant) identifier.
    @param client_id Application (client) identifier.
    @param client_secret Client secret for the application.
    @param timeout Per-request timeout in seconds.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        *,
        graph_url: str = constants.GRAPH_BASE_URL,
        login_url: str = constants.LOGIN_BASE_URL,
        timeout: float = 30,
    ) -> None:
        if not (tenant_id and client_id and client_secret):
            raise DirectoryError("Tenant id, client id and client secret are all required")
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._graph_url = graph_url.rstrip("/")
        self._login_url = login_url.rstrip("/")
        self._timeout = timeout
        self._token: str | None = None

    def _request_json(self, request: urllib.request.Request) -> Dict[str, Any]:
        request.add_header("User-Agent", f"SensorJanitor/{version.__version__}")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = response.read()
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace") if exc.fp is not None else ""
            raise DirectoryError(f"HTTP {exc.code} from {request.full_url}: {detail.strip()}") from exc
        except urllib.error.URLError as exc:
            raise DirectoryError(f"Unable to reach {request.full_url}: {exc.reason}") from exc
        except OSError as exc:
            raise DirectoryError(f"Request to {request.full_url} failed: {exc}") from exc

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DirectoryError(f"Invalid JSON from {request.full_url}") from exc
        if not isinstance(payload, dict):
            raise DirectoryError(f"Unexpected response shape from {request.full_url}")
        return payload

    def access_token(self) -> str:
        """!
        @brief Acquire (and cache) an application token for Graph.
        """

        if self._token:
            return self._token
        url = f"{self._login_url}/{urllib.parse.quote(self._tenant_id)}/oauth2/v2.0/token"
        form = urllib.parse.urlencode(
            {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "scope": constants.GRAPH_SCOPE,
                "grant_type": "client_credentials",
            }
        ).encode("ascii")
        request = urllib.request.Request(
            url,
            data=form,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            method="POST",
        )
        payload = self._request_json(request)
        token = payload.get("access_token")
        if not isinstance(token, str) or not token:
            raise DirectoryError("Token endpoint response did not include an access token")
        self._token = token
        return token

    def _query_users(self, attribute: str, value: str) -> list[Dict[str, Any]]:
        params = urllib.parse.urlencode(
            {
                "$filter": f"{attribute} eq {_odata_literal(value)}",
                "$select": ",".join(USER_FIELDS),
                "$count": "true",
            },
            quote_via=urllib.parse.quote,
        )
        request = urllib.request.Request(
            f"{self._graph_url}/users?{params}",
            headers={
                "Authorization": f"Bearer {self.access_token()}",
                "ConsistencyLevel": "eventual",
                "Accept": "application/json",
            },
        )
        payload = self._request_json(request)
        users = payload.get("value")
        if not isinstance(users, list):
            raise DirectoryError("User query response did not include a value list")
        return [user for user in users if isinstance(user, dict)]

    def find_user(self, username: str) -> DirectoryUser:
        """!
        @brief Resolve ``username`` by principal name, account name, then email.
        @throws UserNotFoundError When no attribute matches.
        @throws DirectoryError On transport or protocol failures.
        """

        human_logger = logging_ext.get_human_logger()
        candidate = username.strip()
        if not candidate:
            raise UserNotFoundError("An empty username cannot be looked up")

        for attribute, label in LOOKUP_ATTRIBUTES:
            users = self._query_users(attribute, candidate)
            if users:
                human_logger.debug("Resolved %s via %s", candidate, attribute)
                return user_from_payload(users[0], matched_by=label)
        raise UserNotFoundError(f"No directory user matches {candidate!r}")


__all__ = [
    "DirectoryError",
    "DirectoryUser",
    "GraphDirectoryClient",
    "LOOKUP_ATTRIBUTES",
    "UserNotFoundError",
    "parse_timestamp",
    "user_from_payload",
]
