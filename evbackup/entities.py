"""
Enterprise Voice entity types and the mapping of backed-up records onto the
parameters of the admin API's create / update calls.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import NormalizationRuleParseError


class EntityType(Enum):
    """
    The closed set of Enterprise Voice types. Declaration order is restore order.

    value = (archive entry base name, remote resource path)
    """
    DIAL_PLAN = ("Dialplans", "tenantDialPlans")
    PSTN_USAGE = ("PSTNUsages", "onlinePstnUsages")
    VOICE_ROUTE = ("VoiceRoutes", "onlineVoiceRoutes")
    VOICE_ROUTING_POLICY = ("VoiceRoutingPolicies", "onlineVoiceRoutingPolicies")
    TRANSLATION_RULE = ("TranslationRules", "teamsTranslationRules")
    PSTN_GATEWAY = ("PSTNGateways", "onlinePstnGateways")

    def __init__(self, archive_name: str, resource: str):
        self.archive_name = archive_name
        self.resource = resource

    @property
    def entry_name(self) -> str:
        return entry_name(self.archive_name)


def entry_name(name: str) -> str:
    return f"{name}.txt"


PSTN_USAGE_IDENTITY = "Global"

# "Outbund" is the attribute's spelling on the remote side; keep it.
GATEWAY_RULE_ATTRIBUTES = (
    "OutboundPstnNumberTranslationRules",
    "OutbundTeamsNumberTranslationRules",
    "InboundPstnNumberTranslationRules",
    "InboundTeamsNumberTranslationRules",
)


# ---------- Helpers ----------
def as_list(value: Any) -> List[Any]:
    """Single values and nulls show up where the service had 0 or 1 items."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def has_identity(records: List[Dict[str, Any]]) -> bool:
    return bool(records) and isinstance(records[0], dict) and records[0].get("Identity") is not None


def has_usage(record: Any) -> bool:
    return isinstance(record, dict) and bool(as_list(record.get("Usage")))


def _as_bool(value: Any, blob: str = "") -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    raise NormalizationRuleParseError(blob or str(value), f"IsInternalExtension={value!r} is not a boolean")


# ---------- Normalization rules ----------
RULE_FIELDS = ("Name", "Pattern", "Translation", "Description", "IsInternalExtension")

_FIELD_RE = re.compile(
    r"(?:^|;)({keys})=(.*?)(?=;(?:{keys})=|;?$)".format(keys="|".join(RULE_FIELDS)),
    re.DOTALL,
)


def parse_normalization_rule(rule: Any) -> Dict[str, Any]:
    """
    Parse one normalization rule into {Name, Pattern, Translation, Description,
    IsInternalExtension}.

    The backup holds each rule as a text blob of Key=Value pairs:

        Name=Test;Pattern=^1(\\d{10})$;Translation=+1$1;Description=US 10-digit;IsInternalExtension=False

    Every field is terminated by ';' except the last one, which runs to the end
    of the string. A value ends where the next known "Key=" begins, so a value
    may itself contain ';'. Rules that were exported in object form are
    accepted as dicts.
    """
    if isinstance(rule, dict):
        missing = [f for f in RULE_FIELDS if f not in rule]
        if missing:
            raise NormalizationRuleParseError(str(rule), f"missing {', '.join(missing)}")
        fields = {f: rule[f] for f in RULE_FIELDS}
        fields["IsInternalExtension"] = _as_bool(fields["IsInternalExtension"], str(rule))
        fields["Description"] = fields["Description"] or ""
        return fields

    if not isinstance(rule, str):
        raise NormalizationRuleParseError(repr(rule), "expected a text blob")

    fields: Dict[str, Any] = {}
    for m in _FIELD_RE.finditer(rule):
        key, value = m.group(1), m.group(2)
        if key in fields:
            raise NormalizationRuleParseError(rule, f"duplicate {key}")
        fields[key] = value

    missing = [f for f in RULE_FIELDS if f not in fields]
    if missing:
        raise NormalizationRuleParseError(rule, f"missing {', '.join(missing)}")

    fields["IsInternalExtension"] = _as_bool(fields["IsInternalExtension"], rule)
    return {f: fields[f] for f in RULE_FIELDS}


def bind_rules(parent: str, rules: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [dict(r, Parent=parent) for r in rules]


# ---------- Create / update parameters ----------
def dial_plan_params(record: Dict[str, Any]) -> Dict[str, Any]:
    params = {
        "Description": record.get("Description") or "",
        "OptimizeDeviceDialing": bool(record.get("OptimizeDeviceDialing")),
    }
    # The service rejects an explicit empty prefix but accepts it unset.
    prefix = record.get("ExternalAccessPrefix")
    if prefix not in (None, ""):
        params["ExternalAccessPrefix"] = prefix
    return params


def voice_route_params(record: Dict[str, Any]) -> Dict[str, Any]:
    priority: Optional[int] = record.get("Priority")
    return {
        "Description": record.get("Description") or "",
        "NumberPattern": record.get("NumberPattern"),
        "Priority": int(priority) if priority is not None else None,
        "OnlinePstnUsages": as_list(record.get("OnlinePstnUsages")),
        "OnlinePstnGatewayList": as_list(record.get("OnlinePstnGatewayList")),
    }


def voice_routing_policy_params(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "Description": record.get("Description") or "",
        "OnlinePstnUsages": as_list(record.get("OnlinePstnUsages")),
    }


def translation_rule_params(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "Description": record.get("Description") or "",
        "Pattern": record.get("Pattern"),
        "Translation": record.get("Translation"),
    }


def gateway_rule_params(record: Optional[Dict[str, Any]] = None) -> Dict[str, List[Any]]:
    """The four translation rule lists of a gateway; all empty when record is None."""
    record = record or {}
    return {attr: as_list(record.get(attr)) for attr in GATEWAY_RULE_ATTRIBUTES}
