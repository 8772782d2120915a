from unittest.mock import Mock

import pytest
import requests

from evbackup.config import DEFAULT_BASE, Settings, load_settings
from evbackup.entities import EntityType
from evbackup.errors import RemoteOperationError, SessionError
from evbackup.session import TenantClient, TenantSession, connect

BASE = "https://admin.example.test"


def _response(status=200, json_body=None, headers=None, text=""):
    r = Mock(spec=requests.Response)
    r.status_code = status
    r.headers = headers or {}
    r.content = b"x" if json_body is not None else b""
    r.json.return_value = json_body
    r.text = text
    return r


@pytest.fixture
def http():
    return Mock(spec=requests.Session)


@pytest.fixture
def session(http):
    settings = Settings(base=BASE, token="tok", tenant_id="t-1", override_domain="contoso.com")
    return TenantSession(settings, http=http)


class TestTenantSession:

    def test_headers_and_params(self, session, http):
        http.request.return_value = _response(json_body={"Identity": "Global"})
        session.get_json(session.url("onlinePstnUsages", "Global"))

        method, url = http.request.call_args.args
        kwargs = http.request.call_args.kwargs
        assert (method, url) == ("GET", f"{BASE}/v1/onlinePstnUsages/Global")
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["params"] == {"tenantId": "t-1", "overrideAdminDomain": "contoso.com"}

    def test_identity_is_quoted(self, session):
        assert session.url("tenantDialPlans", "Tag:DP US") == f"{BASE}/v1/tenantDialPlans/Tag%3ADP%20US"

    def test_get_missing_object(self, session, http):
        http.request.return_value = _response(status=404, text="not found")
        resource = TenantClient(session).resource(EntityType.VOICE_ROUTE)
        assert resource.get("nope") is None

    def test_error_status_raises(self, session, http):
        http.request.return_value = _response(status=400, text="bad prefix")
        resource = TenantClient(session).resource(EntityType.DIAL_PLAN)
        with pytest.raises(RemoteOperationError) as exc:
            resource.update("Tag:A", {"ExternalAccessPrefix": ""})
        assert exc.value.status == 400
        assert "bad prefix" in str(exc.value)

    def test_transport_error_raises(self, session, http):
        http.request.side_effect = requests.exceptions.ConnectionError("reset")
        with pytest.raises(RemoteOperationError) as exc:
            session.delete(session.url("teamsTranslationRules", "R"))
        assert exc.value.status == 0

    def test_delete_missing_object(self, session, http):
        http.request.return_value = _response(status=404)
        assert session.delete(session.url("teamsTranslationRules", "R")) is False

    def test_create_sends_identity(self, session, http):
        http.request.return_value = _response(status=201, json_body={})
        TenantClient(session).resource(EntityType.TRANSLATION_RULE).create("R", {"Pattern": "^1$"})
        assert http.request.call_args.args == ("POST", f"{BASE}/v1/teamsTranslationRules")
        assert http.request.call_args.kwargs["json"] == {"Pattern": "^1$", "Identity": "R"}

    def test_list_follows_next_link(self, session, http):
        next_url = f"{BASE}/v1/onlineVoiceRoutes?page=2&tenantId=t-1"
        http.request.side_effect = [
            _response(json_body={"value": [{"Identity": "A"}]},
                      headers={"Link": f'<{next_url}>; rel="next"'}),
            _response(json_body={"value": [{"Identity": "B"}]}),
        ]
        records = TenantClient(session).resource(EntityType.VOICE_ROUTE).list()

        assert [r["Identity"] for r in records] == ["A", "B"]
        second = http.request.call_args_list[1]
        assert second.args == ("GET", next_url)
        assert second.kwargs["params"] is None

    def test_add_pstn_usage(self, session, http):
        http.request.return_value = _response(status=204)
        TenantClient(session).add_pstn_usage("Sales")
        assert http.request.call_args.args == ("POST", f"{BASE}/v1/onlinePstnUsages/Global/usages")
        assert http.request.call_args.kwargs["json"] == {"Usage": "Sales"}


class TestConnect:

    def test_reuses_supplied_session(self, session):
        assert connect(Settings(), session=session) is session

    def test_no_token(self):
        with pytest.raises(SessionError):
            connect(Settings(base=BASE), prompt_token=lambda _msg: "")

    def test_rejected_token(self, monkeypatch):
        http = Mock(spec=requests.Session)
        http.request.return_value = _response(status=401, text="unauthorized")
        monkeypatch.setattr("evbackup.session.make_session", lambda settings: http)
        with pytest.raises(SessionError):
            connect(Settings(base=BASE, token="bad"))

    def test_prompted_token_is_used(self, monkeypatch):
        http = Mock(spec=requests.Session)
        http.request.return_value = _response(json_body={"DisplayName": "Contoso"})
        monkeypatch.setattr("evbackup.session.make_session", lambda settings: http)

        session = connect(Settings(base=BASE), prompt_token=lambda _msg: " typed ")
        assert session.settings.token == "typed"
        assert TenantClient(session).tenant_display_name() == "Contoso"


class TestSettings:

    def test_defaults(self):
        settings = load_settings(environ={})
        assert settings.base == DEFAULT_BASE
        assert settings.token == ""
        assert settings.timeout == 30
        assert isinstance(settings.verify, str)
        assert settings.debug is False

    def test_environment(self):
        settings = load_settings(override_domain="contoso.com", environ={
            "TEAMS_ADMIN_BASE": "https://proxy.example/ ",
            "TEAMS_TOKEN": " abc ",
            "TEAMS_TENANT_ID": "t-1",
            "TEAMS_VERIFY": "false",
            "TEAMS_DEBUG": "true",
            "TEAMS_TIMEOUT": "5",
        })
        assert settings.base == "https://proxy.example"
        assert settings.token == "abc"
        assert settings.tenant_id == "t-1"
        assert settings.override_domain == "contoso.com"
        assert settings.verify is False
        assert settings.debug is True
        assert settings.timeout == 5.0

    def test_ca_bundle_wins(self):
        settings = load_settings(environ={"REQUESTS_CA_BUNDLE": "/etc/ca.pem", "TEAMS_VERIFY": "false"})
        assert settings.verify == "/etc/ca.pem"
