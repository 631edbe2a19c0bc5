"""SharePoint list store backed by the Microsoft Graph REST API.

Uses credential-less authentication via DefaultAzureCredential, so the same
code runs under Azure CLI login locally and a managed identity in CI.

Environment Variables:
    CARELIST_SITE_URL: SharePoint site URL, e.g. https://contoso.sharepoint.com/sites/clinic
"""

import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Mapping
from urllib.parse import urlparse

import requests
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import DefaultAzureCredential

from carelist.errors import SetupFailure, StoreError, ValidationError
from carelist.store.base import FieldSpec, FieldType, Reference, StoredRecord, lookup_id_field

logger = logging.getLogger(__name__)

GRAPH_URL = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
PAGE_SIZE = 200
REQUEST_TIMEOUT = 60


def site_path_from_url(site_url: str) -> str:
    """Convert a SharePoint site URL to a Graph site path.

    Args:
        site_url: e.g. https://contoso.sharepoint.com/sites/clinic

    Returns:
        Graph addressing form, e.g. contoso.sharepoint.com:/sites/clinic
    """
    parsed = urlparse(site_url if "://" in site_url else f"https://{site_url}")
    if not parsed.hostname:
        raise ValueError(f"Invalid SharePoint site URL: {site_url!r}")
    path = parsed.path.rstrip("/")
    if not path:
        return parsed.hostname
    return f"{parsed.hostname}:{path}"


def column_definition(spec: FieldSpec, target_list_id: str | None = None) -> dict[str, Any]:
    """Build the Graph columnDefinition payload for a field."""
    column: dict[str, Any] = {
        "name": spec.name,
        "displayName": spec.name,
        "required": spec.required,
        "enforceUniqueValues": spec.unique,
        "indexed": spec.indexed or spec.unique,
    }

    if spec.field_type == FieldType.TEXT:
        column["text"] = {}
    elif spec.field_type == FieldType.NOTE:
        column["text"] = {"allowMultipleLines": True, "linesForEditing": 6}
    elif spec.field_type == FieldType.DATE:
        column["dateTime"] = {"format": "dateOnly"}
    elif spec.field_type == FieldType.DATETIME:
        column["dateTime"] = {"format": "dateTime"}
    elif spec.field_type == FieldType.BOOLEAN:
        column["boolean"] = {}
    elif spec.field_type == FieldType.CHOICE:
        column["choice"] = {"choices": list(spec.choices), "displayAs": "dropDownMenu"}
    elif spec.field_type == FieldType.COMPUTED:
        column["calculated"] = {"formula": f"={spec.formula}", "outputType": "text"}
        # Calculated columns cannot be required, unique or indexed
        column.pop("required")
        column.pop("enforceUniqueValues")
        column.pop("indexed")
    elif spec.field_type == FieldType.REFERENCE:
        if target_list_id is None:
            raise ValueError(f"Reference field {spec.name!r} needs the target list id")
        column["lookup"] = {"listId": target_list_id, "columnName": spec.target_field}
        column.pop("enforceUniqueValues")
    else:
        raise ValueError(f"Unsupported field type: {spec.field_type}")

    return column


def serialize_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Convert record values to the JSON shape Graph expects for listItem fields."""
    payload: dict[str, Any] = {}
    for name, value in fields.items():
        if value is None:
            continue
        if isinstance(value, Reference):
            payload[lookup_id_field(name)] = value.storage_id
        elif isinstance(value, Enum):
            payload[name] = value.value
        elif isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc).replace(tzinfo=None)
            payload[name] = value.strftime("%Y-%m-%dT%H:%M:%SZ")
        elif isinstance(value, date):
            payload[name] = value.isoformat()
        else:
            payload[name] = value
    return payload


class GraphListStore:
    """``ListStore`` implementation for SharePoint Online lists."""

    def __init__(
        self,
        site_url: str,
        credential: Any = None,
        session: requests.Session | None = None,
        base_url: str = GRAPH_URL,
    ) -> None:
        self.site_url = site_url
        self.base_url = base_url.rstrip("/")
        self._credential = credential or DefaultAzureCredential()
        self._session = session or requests.Session()
        self._site_id: str | None = None
        self._list_ids: dict[str, str] = {}

    # =========================================================================
    # Transport
    # =========================================================================

    def _headers(self) -> dict[str, str]:
        try:
            token = self._credential.get_token(GRAPH_SCOPE)
        except ClientAuthenticationError as e:
            raise StoreError(f"Could not acquire a Microsoft Graph token: {e}") from e
        return {
            "Authorization": f"Bearer {token.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        if not url.startswith("http"):
            url = f"{self.base_url}{url}"
        try:
            response = self._session.request(
                method, url, headers=self._headers(), timeout=REQUEST_TIMEOUT, **kwargs
            )
        except requests.RequestException as e:
            raise StoreError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            message = f"{method} {url} returned {response.status_code}: {response.text[:500]}"
            if method == "POST" and url.endswith("/items") and response.status_code in (400, 409):
                raise ValidationError(message)
            raise StoreError(message)
        return response

    def _paged(self, url: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        values: list[dict[str, Any]] = []
        while url:
            payload = self._request("GET", url, params=params).json()
            values.extend(payload.get("value", []))
            url = payload.get("@odata.nextLink")
            params = None  # nextLink already carries the query
        return values

    # =========================================================================
    # Site and list resolution
    # =========================================================================

    def connect(self) -> str:
        """Resolve the site id, verifying the site is reachable.

        Raises:
            SetupFailure: if the site cannot be resolved or authentication fails
        """
        try:
            site = self._request("GET", f"/sites/{site_path_from_url(self.site_url)}").json()
        except (StoreError, ValueError) as e:
            raise SetupFailure(f"Cannot reach SharePoint site {self.site_url}: {e}") from e
        self._site_id = site["id"]
        logger.info(f"Connected to site {site.get('displayName', self.site_url)} ({self._site_id})")
        return self._site_id

    @property
    def site_id(self) -> str:
        if self._site_id is None:
            self.connect()
        return self._site_id

    def _find_list_id(self, name: str) -> str | None:
        if name in self._list_ids:
            return self._list_ids[name]
        lists = self._paged(f"/sites/{self.site_id}/lists", params={"$select": "id,displayName"})
        for item in lists:
            if item.get("displayName") == name:
                self._list_ids[name] = item["id"]
                return item["id"]
        return None

    def _list_id(self, name: str) -> str:
        list_id = self._find_list_id(name)
        if list_id is None:
            raise StoreError(f"List {name!r} does not exist on {self.site_url}")
        return list_id

    # =========================================================================
    # ListStore operations
    # =========================================================================

    def collection_exists(self, name: str) -> bool:
        return self._find_list_id(name) is not None

    def create_collection(self, name: str) -> None:
        created = self._request(
            "POST",
            f"/sites/{self.site_id}/lists",
            json={"displayName": name, "list": {"template": "genericList"}},
        ).json()
        self._list_ids[name] = created["id"]

    def delete_collection(self, name: str) -> None:
        list_id = self._list_id(name)
        self._request("DELETE", f"/sites/{self.site_id}/lists/{list_id}")
        self._list_ids.pop(name, None)

    def add_field(self, name: str, spec: FieldSpec) -> None:
        target_list_id = None
        if spec.field_type == FieldType.REFERENCE:
            target_list_id = self._list_id(spec.target)
        self._request(
            "POST",
            f"/sites/{self.site_id}/lists/{self._list_id(name)}/columns",
            json=column_definition(spec, target_list_id),
        )

    def create_record(self, name: str, fields: Mapping[str, Any]) -> str:
        created = self._request(
            "POST",
            f"/sites/{self.site_id}/lists/{self._list_id(name)}/items",
            json={"fields": serialize_fields(fields)},
        ).json()
        return str(created["id"])

    def list_records(self, name: str) -> list[StoredRecord]:
        items = self._paged(
            f"/sites/{self.site_id}/lists/{self._list_id(name)}/items",
            params={"expand": "fields", "$top": PAGE_SIZE},
        )
        return [StoredRecord(storage_id=str(item["id"]), fields=item.get("fields", {})) for item in items]

    def delete_record(self, name: str, storage_id: str) -> None:
        self._request("DELETE", f"/sites/{self.site_id}/lists/{self._list_id(name)}/items/{storage_id}")
