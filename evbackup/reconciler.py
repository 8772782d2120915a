"""
Restore side: optional purge of the live Enterprise Voice configuration, then
create-or-update of every backed-up record by Identity.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List

from . import console
from .entities import (
    EntityType,
    as_list,
    bind_rules,
    dial_plan_params,
    gateway_rule_params,
    parse_normalization_rule,
    translation_rule_params,
    voice_route_params,
    voice_routing_policy_params,
)
from .errors import NormalizationRuleParseError, RemoteOperationError
from .session import TenantClient
from .validator import ValidatedBackup

CREATED = "created"
UPDATED = "updated"
SKIPPED = "skipped"
FAILED = "failed"
OUTCOMES = [CREATED, UPDATED, SKIPPED, FAILED]


@dataclass
class RestoreReport:
    counts: Dict[EntityType, Counter] = field(default_factory=dict)

    def add(self, entity_type: EntityType, outcome: str) -> None:
        self.counts.setdefault(entity_type, Counter())[outcome] += 1

    def count(self, entity_type: EntityType, outcome: str) -> int:
        return self.counts.get(entity_type, Counter())[outcome]

    @property
    def failed(self) -> int:
        return sum(c[FAILED] for c in self.counts.values())

    def show(self) -> None:
        for entity_type in EntityType:
            if entity_type in self.counts:
                kv_counts = {o: self.counts[entity_type][o] for o in OUTCOMES}
                console.kv_block(entity_type.archive_name, kv_counts, OUTCOMES)


class Reconciler:
    def __init__(self, client: TenantClient):
        self.client = client
        self.report = RestoreReport()

    # ---------- Purge ----------
    def purge(self) -> None:
        """
        Remove the live configuration. Gateways must drop their translation
        rule references before the rules themselves can be deleted.
        """
        console.step("Removing existing configuration …")
        self._delete_all(EntityType.DIAL_PLAN)
        self._delete_all(EntityType.VOICE_ROUTE)
        self._delete_all(EntityType.VOICE_ROUTING_POLICY)
        self._purge_step("PSTN usages", self.client.clear_pstn_usages)
        self._purge_step("gateway translation rules", self._clear_gateway_rules)
        self._delete_all(EntityType.TRANSLATION_RULE)

    def _purge_step(self, what: str, fn: Callable[[], None]) -> None:
        console.info(f"Clearing {what}")
        try:
            fn()
        except RemoteOperationError as e:
            console.err(f"Clearing {what} failed: {e}")

    def _delete_all(self, entity_type: EntityType) -> None:
        resource = self.client.resource(entity_type)
        console.info(f"Deleting {entity_type.archive_name}")
        try:
            existing = resource.list()
        except RemoteOperationError as e:
            console.err(f"Listing {entity_type.archive_name} failed: {e}")
            return
        for record in existing:
            identity = record.get("Identity")
            try:
                # False only means it was already gone.
                resource.delete(identity)
            except RemoteOperationError as e:
                console.err(f"Delete {identity} failed: {e}")

    def _clear_gateway_rules(self) -> None:
        resource = self.client.resource(EntityType.PSTN_GATEWAY)
        for gateway in resource.list():
            identity = gateway.get("Identity")
            try:
                resource.update(identity, gateway_rule_params())
            except RemoteOperationError as e:
                console.err(f"Clearing translation rules on {identity} failed: {e}")

    # ---------- Reconcile ----------
    def reconcile(self, backup: ValidatedBackup) -> RestoreReport:
        handlers = {
            EntityType.DIAL_PLAN: self.restore_dial_plans,
            EntityType.PSTN_USAGE: self.restore_pstn_usages,
            EntityType.VOICE_ROUTE: self.restore_voice_routes,
            EntityType.VOICE_ROUTING_POLICY: self.restore_voice_routing_policies,
            EntityType.TRANSLATION_RULE: self.restore_translation_rules,
            EntityType.PSTN_GATEWAY: self.restore_gateways,
        }
        for entity_type in EntityType:
            if entity_type not in backup:
                console.warn(f"{entity_type.archive_name} not restored (failed validation)")
                continue
            console.step(f"Restoring {entity_type.archive_name} …")
            handlers[entity_type](backup[entity_type])
        return self.report

    def _records(self, entity_type: EntityType, records: List[Any]) -> Iterator[Dict[str, Any]]:
        """Records with an Identity; anything else is reported and counted as failed."""
        for record in records:
            if not isinstance(record, dict) or not record.get("Identity"):
                console.err(f"{entity_type.archive_name}: record without Identity skipped: {record!r}")
                self.report.add(entity_type, FAILED)
                continue
            yield record

    def _upsert(self, entity_type: EntityType, record: Dict[str, Any],
                build: Callable[[Dict[str, Any]], Dict[str, Any]]) -> str:
        identity = record["Identity"]
        try:
            params = build(record)
        except (TypeError, ValueError) as e:
            console.err(f"{identity}: unusable record ({e})")
            return FAILED

        resource = self.client.resource(entity_type)
        try:
            if resource.get(identity) is not None:
                resource.update(identity, params)
                console.dbg(f"updated {identity}")
                return UPDATED
            resource.create(identity, params)
            console.dbg(f"created {identity}")
            return CREATED
        except RemoteOperationError as e:
            console.err(f"{identity}: {e}")
            return FAILED

    def upsert(self, entity_type: EntityType, record: Dict[str, Any],
               build: Callable[[Dict[str, Any]], Dict[str, Any]]) -> str:
        """Update the object when it exists, create it otherwise."""
        outcome = self._upsert(entity_type, record, build)
        self.report.add(entity_type, outcome)
        return outcome

    def restore_dial_plans(self, records: List[Dict[str, Any]]) -> None:
        # One outcome per plan: a plan whose rules could not be set counts as failed.
        for record in self._records(EntityType.DIAL_PLAN, records):
            outcome = self._upsert(EntityType.DIAL_PLAN, record, dial_plan_params)
            if outcome != FAILED and not self._set_normalization_rules(record):
                outcome = FAILED
            self.report.add(EntityType.DIAL_PLAN, outcome)

    def _set_normalization_rules(self, record: Dict[str, Any]) -> bool:
        identity = record["Identity"]
        try:
            rules = [parse_normalization_rule(r) for r in as_list(record.get("NormalizationRules"))]
        except NormalizationRuleParseError as e:
            console.err(f"{identity}: {e}")
            return False
        try:
            self.client.resource(EntityType.DIAL_PLAN).update(
                identity, {"NormalizationRules": bind_rules(identity, rules)})
        except RemoteOperationError as e:
            console.err(f"{identity} normalization rules: {e}")
            return False
        return True

    def restore_pstn_usages(self, record: Dict[str, Any]) -> None:
        try:
            current = set(as_list(self.client.pstn_usages().get("Usage")))
        except RemoteOperationError as e:
            console.err(f"Reading current PSTN usages failed: {e}")
            current = set()
        for usage in as_list(record.get("Usage")):
            if usage in current:
                self.report.add(EntityType.PSTN_USAGE, SKIPPED)
                continue
            try:
                self.client.add_pstn_usage(usage)
            except RemoteOperationError as e:
                console.err(f"PSTN usage {usage}: {e}")
                self.report.add(EntityType.PSTN_USAGE, FAILED)
                continue
            current.add(usage)
            self.report.add(EntityType.PSTN_USAGE, CREATED)

    def restore_voice_routes(self, records: List[Dict[str, Any]]) -> None:
        for record in self._records(EntityType.VOICE_ROUTE, records):
            self.upsert(EntityType.VOICE_ROUTE, record, voice_route_params)

    def restore_voice_routing_policies(self, records: List[Dict[str, Any]]) -> None:
        for record in self._records(EntityType.VOICE_ROUTING_POLICY, records):
            self.upsert(EntityType.VOICE_ROUTING_POLICY, record, voice_routing_policy_params)

    def restore_translation_rules(self, records: List[Dict[str, Any]]) -> None:
        for record in self._records(EntityType.TRANSLATION_RULE, records):
            self.upsert(EntityType.TRANSLATION_RULE, record, translation_rule_params)

    def restore_gateways(self, records: List[Dict[str, Any]]) -> None:
        # Gateways are never created here, only their rule lists restored.
        resource = self.client.resource(EntityType.PSTN_GATEWAY)
        for record in self._records(EntityType.PSTN_GATEWAY, records):
            identity = record["Identity"]
            try:
                if resource.get(identity) is None:
                    console.warn(f"Gateway {identity} not found in tenant, skipped")
                    self.report.add(EntityType.PSTN_GATEWAY, SKIPPED)
                    continue
                resource.update(identity, gateway_rule_params(record))
            except RemoteOperationError as e:
                console.err(f"Gateway {identity}: {e}")
                self.report.add(EntityType.PSTN_GATEWAY, FAILED)
                continue
            self.report.add(EntityType.PSTN_GATEWAY, UPDATED)
