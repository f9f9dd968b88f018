"""
SendGrid v3 REST API client - Handles all endpoint interactions.

Authenticates with either an API key (Bearer header) or account
username/password (HTTP basic). Every request is bounded by the configured
timeout and is never retried; failures surface as SendGridConnectionError.

Endpoint reference:
- GET    /v3/scopes                  connectivity probe
- GET    /v3/<object endpoint>       catalog objects (see core.catalog)
- PUT    /v3/marketing/contacts      upsert contacts
- DELETE /v3/marketing/contacts      delete contacts by id
- POST   /v3/mail/send               send an email
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from ..core.catalog import ObjectDefinition, ResponseShape
from ..core.config_models import ApiKeyAuth, AuthMode, BasicAuth, ClientSettings
from ..core.errors import SendGridConnectionError
from ..core.properties import PROPERTY_END_DATE, PROPERTY_START_DATE, PROPERTY_STAT_CATEGORIES

logger = logging.getLogger(__name__)

# Argument property key -> API query parameter
ARGUMENT_PARAMS = {
    PROPERTY_START_DATE: "start_date",
    PROPERTY_END_DATE: "end_date",
    PROPERTY_STAT_CATEGORIES: "categories",
}


class SendGridClient:
    """Client for the SendGrid v3 REST API."""

    def __init__(
        self,
        api_key: str | None = None,
        username: str | None = None,
        password: str | None = None,
        settings: ClientSettings | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: SendGrid API key (mutually exclusive with username/password)
            username: Account login name
            password: Account password
            settings: Base URL, timeout and paging settings

        Raises:
            ValueError: If neither complete credential set is given
        """
        self.settings = settings or ClientSettings()
        self.base_url = self.settings.base_url.rstrip("/")
        self._session = requests.Session()
        self._session.headers.update({
            "Accept": "application/json",
            "User-Agent": self.settings.user_agent,
        })

        if api_key:
            self._session.headers["Authorization"] = f"Bearer {api_key}"
        elif username and password:
            self._session.auth = (username, password)
        else:
            raise ValueError("An API key or a username and password are required")

    @classmethod
    def from_auth(cls, auth: AuthMode, settings: ClientSettings | None = None) -> SendGridClient:
        """Build a client from resolved credentials."""
        if isinstance(auth, BasicAuth):
            return cls(username=auth.username, password=auth.password, settings=settings)
        if isinstance(auth, ApiKeyAuth):
            return cls(api_key=auth.api_key, settings=settings)
        raise TypeError(f"Unsupported auth mode: {type(auth).__name__}")

    # ==========================================================================
    # TRANSPORT
    # ==========================================================================

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> requests.Response:
        url = self._url(endpoint)
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=self.settings.timeout_seconds,
            )
        except requests.RequestException as e:
            raise SendGridConnectionError(f"{method} {url} failed: {e}") from e

        if not response.ok:
            raise SendGridConnectionError(
                f"{method} {url} returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    # ==========================================================================
    # OPERATIONS
    # ==========================================================================

    def check_connection(self) -> None:
        """
        Perform a lightweight authenticated request.

        Raises:
            SendGridConnectionError: If the API is unreachable or rejects the credentials
        """
        self._request("GET", "scopes")

    def fetch(
        self, definition: ObjectDefinition, arguments: dict[str, str] | None = None
    ) -> list[dict[str, Any]]:
        """
        Fetch all records of a catalog object.

        Args:
            definition: Catalog definition of the object
            arguments: Request arguments keyed by property name; only the ones
                the object accepts are sent

        Returns:
            Records as name -> value mappings, in API order
        """
        arguments = arguments or {}
        params: dict[str, Any] = {
            ARGUMENT_PARAMS.get(key, key): value
            for key, value in arguments.items()
            if key in definition.accepted_arguments and value
        }
        if definition.paginated:
            params["page_size"] = self.settings.page_size

        records: list[dict[str, Any]] = []
        next_url: str | None = definition.endpoint
        while next_url:
            body = self._request("GET", next_url, params=params).json()
            records.extend(extract_records(body, definition.response_shape))

            next_url = None
            if definition.paginated and isinstance(body, dict):
                next_url = (body.get("_metadata") or {}).get("next")
                # The next link already carries the query string
                params = None

        logger.info("Fetched %d %s record(s)", len(records), definition.name)
        return records

    def create_contacts(self, contacts: list[dict[str, Any]]) -> str | None:
        """Upsert marketing contacts; returns the import job id."""
        body = self._request("PUT", "marketing/contacts", json={"contacts": contacts}).json()
        return body.get("job_id")

    def delete_contacts(self, ids: list[str]) -> str | None:
        """Delete marketing contacts by id; returns the deletion job id."""
        if not ids:
            return None
        body = self._request(
            "DELETE", "marketing/contacts", params={"ids": ",".join(ids)}
        ).json()
        return body.get("job_id")

    def send_mail(
        self,
        from_address: str,
        to: str | list[str],
        subject: str,
        content: str = "",
        content_type: str = "text/plain",
        reply_to: str | None = None,
        mail_settings: dict[str, Any] | None = None,
        tracking_settings: dict[str, Any] | None = None,
    ) -> None:
        """
        Send a single email through mail/send.

        Args:
            from_address: Sender address
            to: One recipient or a list of recipients
            subject: Mail subject
            content: Body text
            content_type: MIME type of the body
            reply_to: Optional Reply-To address
            mail_settings: Optional mail_settings block (footer, sandbox mode)
            tracking_settings: Optional tracking_settings block
        """
        recipients = [to] if isinstance(to, str) else list(to)
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": address} for address in recipients]}],
            "from": {"email": from_address},
            "subject": subject,
            "content": [{"type": content_type, "value": content or " "}],
        }
        if reply_to:
            payload["reply_to"] = {"email": reply_to}
        if mail_settings:
            payload["mail_settings"] = mail_settings
        if tracking_settings:
            payload["tracking_settings"] = tracking_settings
        self._request("POST", "mail/send", json=payload)

    def close(self) -> None:
        self._session.close()


def extract_records(body: Any, shape: ResponseShape) -> list[dict[str, Any]]:
    """Pull the record list out of a response body."""
    if shape == ResponseShape.RESULT:
        return list((body or {}).get("result") or [])
    if shape == ResponseShape.RESULTS:
        return list((body or {}).get("results") or [])
    if shape == ResponseShape.STATS:
        return flatten_stats(body or [])
    return list(body or [])


def flatten_stats(days: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Flatten stats responses into one record per day and stat entry.

    [{"date": d, "stats": [{"name": n, "type": t, "metrics": {...}}]}]
    becomes [{"date": d, "name": n, "type": t, **metrics}].
    """
    records = []
    for day in days:
        for stat in day.get("stats") or []:
            record = {"date": day.get("date")}
            for key in ("name", "type"):
                if key in stat:
                    record[key] = stat[key]
            record.update(stat.get("metrics") or {})
            records.append(record)
    return records


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors:
        return "; ".join(str(e.get("message", e)) for e in errors)
    return str(body)[:200]
