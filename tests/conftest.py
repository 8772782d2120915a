"""
Shared fixtures: an in-memory stand-in for the tenant admin API that records
every call, and sample backup content.
"""

import json
import zipfile

import pytest

from evbackup.entities import PSTN_USAGE_IDENTITY, EntityType
from evbackup.errors import RemoteOperationError

MUTATING = ("create", "update", "delete", "add_usage", "clear_usages")


class FakeResource:
    def __init__(self, entity_type, calls, records=None):
        self.name = entity_type.archive_name
        self.calls = calls
        self.store = {r["Identity"]: dict(r) for r in (records or [])}
        self.fail = set()

    def _check(self, op, identity):
        if (op, identity) in self.fail:
            raise RemoteOperationError(op.upper(), f"fake://{self.name}/{identity}", 400, "rejected")

    def list(self):
        self.calls.append(("list", self.name))
        return [dict(r) for r in self.store.values()]

    def get(self, identity):
        self.calls.append(("get", self.name, identity))
        record = self.store.get(identity)
        return dict(record) if record is not None else None

    def create(self, identity, params):
        self.calls.append(("create", self.name, identity, params))
        self._check("create", identity)
        self.store[identity] = dict(params, Identity=identity)

    def update(self, identity, params):
        self.calls.append(("update", self.name, identity, params))
        self._check("update", identity)
        self.store[identity].update(params)

    def delete(self, identity):
        self.calls.append(("delete", self.name, identity))
        self._check("delete", identity)
        return self.store.pop(identity, None) is not None


class FakeClient:
    def __init__(self):
        self.calls = []
        self.resources = {t: FakeResource(t, self.calls) for t in EntityType}
        self.usages = []
        self.failing_queries = set()

    def seed(self, entity_type, *records):
        for r in records:
            self.resources[entity_type].store[r["Identity"]] = dict(r)

    def resource(self, entity_type):
        return self.resources[entity_type]

    def pstn_usages(self):
        return {"Identity": PSTN_USAGE_IDENTITY, "Usage": list(self.usages)}

    def add_pstn_usage(self, name):
        self.calls.append(("add_usage", name))
        self.usages.append(name)

    def clear_pstn_usages(self):
        self.calls.append(("clear_usages",))
        self.usages.clear()

    def tenant_display_name(self):
        return "Contoso"

    def query(self, path):
        if path in self.failing_queries:
            raise RemoteOperationError("GET", f"fake://{path}", 403, "forbidden")
        return [{"Identity": path}]

    def mutations(self):
        return [c for c in self.calls if c[0] in MUTATING]


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def sample_records():
    return {
        "Dialplans": [
            {
                "Identity": "Tag:DP-US",
                "Description": "US",
                "OptimizeDeviceDialing": False,
                "ExternalAccessPrefix": None,
                "NormalizationRules": [
                    "Name=Test;Pattern=^1(\\d{10})$;Translation=+1$1;"
                    "Description=US 10-digit;IsInternalExtension=False",
                ],
            },
            {
                "Identity": "Tag:DP-UK",
                "Description": "UK",
                "OptimizeDeviceDialing": True,
                "ExternalAccessPrefix": "9",
                "NormalizationRules": [],
            },
        ],
        "VoiceRoutes": [
            {
                "Identity": "US-Route",
                "NumberPattern": "^\\+1(\\d{10})$",
                "Priority": 0,
                "OnlinePstnUsages": ["Sales"],
                "OnlinePstnGatewayList": ["sbc1.contoso.com"],
                "Description": "",
            },
        ],
        "VoiceRoutingPolicies": [
            {"Identity": "Tag:US-Policy", "OnlinePstnUsages": ["Sales", "Support"], "Description": ""},
        ],
        "PSTNUsages": {"Identity": "Global", "Usage": ["Sales", "Support"]},
        "TranslationRules": [
            {"Identity": "StripPlus", "Pattern": "^\\+(\\d+)$", "Translation": "$1", "Description": ""},
        ],
        "PSTNGateways": [
            {
                "Identity": "sbc1.contoso.com",
                "OutboundPstnNumberTranslationRules": ["StripPlus"],
                "OutbundTeamsNumberTranslationRules": [],
                "InboundPstnNumberTranslationRules": None,
                "InboundTeamsNumberTranslationRules": [],
            },
        ],
    }


@pytest.fixture
def make_backup(tmp_path, sample_records):
    """Write a backup zip from sample_records, with entries dropped or replaced."""
    def _make(skip=(), raw=None, name="EVBackup_2024-05-01.zip"):
        raw = raw or {}
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as zf:
            for entry, data in sample_records.items():
                if entry in skip:
                    continue
                text = raw[entry] if entry in raw else json.dumps(data)
                zf.writestr(f"{entry}.txt", text)
        return str(path)
    return _make
