"""
Session provider and remote configuration client.

TenantSession wraps a requests.Session (retry + TLS bundle) holding the admin
bearer token. TenantClient exposes the per entity list / get / create / update /
delete contract the collector and reconciler work against.
"""

import getpass
from dataclasses import replace
from typing import Any, Callable, Dict, Iterator, List, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from . import console
from .config import Settings
from .entities import PSTN_USAGE_IDENTITY, EntityType, as_list
from .errors import RemoteOperationError, SessionError

API_VERSION = "v1"


def make_session(settings: Settings) -> requests.Session:
    retry = Retry(
        total=6, connect=6, read=6, status=6,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods={"GET", "PUT", "DELETE"},
        respect_retry_after_header=True,
    )
    s = requests.Session()
    s.verify = settings.verify
    s.mount("https://", HTTPAdapter(max_retries=retry, pool_connections=1, pool_maxsize=10))
    s.mount("http://", HTTPAdapter(max_retries=retry))
    return s


def _next_link(r: requests.Response) -> Optional[str]:
    # Link: <URL>; rel="next"
    link = r.headers.get("Link", "")
    for part in link.split(","):
        if 'rel="next"' in part:
            seg = part.strip().split(";")[0].strip()
            if seg.startswith("<") and seg.endswith(">"):
                return seg[1:-1]
    return None


def _items(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if "value" in data or "items" in data:
            return as_list(data.get("value", data.get("items")))
        return [data]
    return []


class TenantSession:
    """An authenticated admin session against one tenant."""

    def __init__(self, settings: Settings, http: Optional[requests.Session] = None):
        self.settings = settings
        self.http = http if http is not None else make_session(settings)

    def hdrs(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def add_org(self, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params = dict(params or {})
        if self.settings.tenant_id:
            params["tenantId"] = self.settings.tenant_id
        if self.settings.override_domain:
            params["overrideAdminDomain"] = self.settings.override_domain
        return params

    def url(self, *parts: str) -> str:
        path = "/".join(quote(str(p), safe="") for p in parts)
        return f"{self.settings.base}/{API_VERSION}/{path}"

    def request(self, method: str, url: str, params: Optional[Dict[str, Any]] = None,
                json: Any = None, paged: bool = False) -> requests.Response:
        # A "next" link already carries every query parameter.
        params = None if paged else self.add_org(params)
        console.dbg(f"{method} {url} params={params} json={json}")
        try:
            return self.http.request(method, url, headers=self.hdrs(), params=params,
                                     json=json, timeout=self.settings.timeout)
        except requests.exceptions.RequestException as e:
            raise RemoteOperationError(method, url, 0, str(e)) from e

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None,
                 allow_missing: bool = False) -> Any:
        r = self.request("GET", url, params=params)
        if r.status_code == 404 and allow_missing:
            return None
        if r.status_code != 200:
            raise RemoteOperationError("GET", url, r.status_code, r.text)
        return r.json() if r.content else None

    def get_pages(self, url: str, params: Optional[Dict[str, Any]] = None) -> Iterator[Any]:
        """
        Generic pager that follows Link: rel="next".
        """
        paged = False
        while True:
            r = self.request("GET", url, params=params, paged=paged)
            if r.status_code != 200:
                raise RemoteOperationError("GET", url, r.status_code, r.text)
            yield r.json() if r.content else []
            next_url = _next_link(r)
            if not next_url:
                break
            url, paged = next_url, True

    def put_json(self, url: str, json: Any) -> Any:
        r = self.request("PUT", url, json=json)
        if r.status_code not in (200, 201, 204):
            raise RemoteOperationError("PUT", url, r.status_code, r.text)
        return r.json() if r.content else None

    def post_json(self, url: str, json: Any) -> Any:
        r = self.request("POST", url, json=json)
        if r.status_code not in (200, 201, 204):
            raise RemoteOperationError("POST", url, r.status_code, r.text)
        return r.json() if r.content else None

    def delete(self, url: str) -> bool:
        """False when there was nothing to delete."""
        r = self.request("DELETE", url)
        if r.status_code == 404:
            return False
        if r.status_code not in (200, 202, 204):
            raise RemoteOperationError("DELETE", url, r.status_code, r.text)
        return True


def connect(settings: Settings, session: Optional[TenantSession] = None,
            prompt_token: Callable[[str], str] = getpass.getpass) -> TenantSession:
    """
    Reuse a supplied session, or establish a new one and check it against the
    tenant endpoint. Raises SessionError when that is not possible.
    """
    if session is not None:
        return session

    if not settings.token:
        token = (prompt_token("Enter your Teams admin bearer token: ") or "").strip()
        if not token:
            raise SessionError("No admin token: set TEAMS_TOKEN or enter one at the prompt.")
        settings = replace(settings, token=token)

    console.set_debug(settings.debug)
    tenant_session = TenantSession(settings)
    url = tenant_session.url("tenant")
    try:
        r = tenant_session.request("GET", url)
    except RemoteOperationError as e:
        raise SessionError(f"Cannot reach {settings.base}: {e.body}") from e
    if r.status_code in (401, 403):
        hint = f" (admin domain override: {settings.override_domain})" if settings.override_domain else ""
        raise SessionError(f"Authentication rejected by tenant: {r.status_code}{hint}")
    if r.status_code != 200:
        raise SessionError(f"GET {url} -> {r.status_code} {r.text}")
    return tenant_session


# ---------- Remote configuration service ----------
class Resource:
    """One remote object collection, addressed by Identity."""

    def __init__(self, session: TenantSession, path: str):
        self.session = session
        self.path = path

    def list(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for page in self.session.get_pages(self.session.url(self.path)):
            out.extend(_items(page))
        return out

    def get(self, identity: str) -> Optional[Dict[str, Any]]:
        return self.session.get_json(self.session.url(self.path, identity), allow_missing=True)

    def create(self, identity: str, params: Dict[str, Any]) -> Any:
        return self.session.post_json(self.session.url(self.path), dict(params, Identity=identity))

    def update(self, identity: str, params: Dict[str, Any]) -> Any:
        return self.session.put_json(self.session.url(self.path, identity), params)

    def delete(self, identity: str) -> bool:
        return self.session.delete(self.session.url(self.path, identity))


class TenantClient:
    def __init__(self, session: TenantSession):
        self.session = session
        self._resources: Dict[EntityType, Resource] = {}

    def resource(self, entity_type: EntityType) -> Resource:
        if entity_type not in self._resources:
            self._resources[entity_type] = Resource(self.session, entity_type.resource)
        return self._resources[entity_type]

    # PSTN usages are a single global record; the service only adds to it.
    def pstn_usages(self) -> Dict[str, Any]:
        data = self.resource(EntityType.PSTN_USAGE).get(PSTN_USAGE_IDENTITY)
        return data or {"Identity": PSTN_USAGE_IDENTITY, "Usage": []}

    def add_pstn_usage(self, name: str) -> None:
        url = self.session.url(EntityType.PSTN_USAGE.resource, PSTN_USAGE_IDENTITY, "usages")
        self.session.post_json(url, {"Usage": name})

    def clear_pstn_usages(self) -> None:
        self.resource(EntityType.PSTN_USAGE).update(PSTN_USAGE_IDENTITY, {"Usage": []})

    def tenant_display_name(self) -> str:
        data = self.session.get_json(self.session.url("tenant")) or {}
        return (data.get("DisplayName") or "").strip()

    def query(self, path: str) -> List[Dict[str, Any]]:
        return Resource(self.session, path).list()
