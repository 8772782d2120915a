"""
Backup side: enumerate remote configuration and serialise it to JSON text,
one record per entity type (or per tenant query in full-tenant mode).
"""

import json
import os
from datetime import date
from typing import Any, Dict, Optional

from . import console
from .archive import backup_filename, pack
from .entities import EntityType
from .errors import RemoteOperationError
from .session import TenantClient

VOICE_PREFIX = "EV"
TENANT_PREFIX = "Tenant"

# Full-tenant catalogue: archive entry name -> remote resource path
TENANT_QUERIES = (
    ("CsTenant", "tenant"),
    ("CsTenantDialPlan", "tenantDialPlans"),
    ("CsOnlineVoiceRoute", "onlineVoiceRoutes"),
    ("CsOnlineVoiceRoutingPolicy", "onlineVoiceRoutingPolicies"),
    ("CsOnlinePstnUsages", "onlinePstnUsages"),
    ("CsTeamsTranslationRule", "teamsTranslationRules"),
    ("CsOnlinePstnGateway", "onlinePstnGateways"),
    ("CsOnlineVoicemailPolicy", "onlineVoicemailPolicies"),
    ("CsCallingLineIdentity", "callingLineIdentities"),
    ("CsOnlineAudioConferencingRoutingPolicy", "onlineAudioConferencingRoutingPolicies"),
    ("CsTeamsCallingPolicy", "teamsCallingPolicies"),
    ("CsTeamsCallParkPolicy", "teamsCallParkPolicies"),
    ("CsTeamsEmergencyCallingPolicy", "teamsEmergencyCallingPolicies"),
    ("CsTeamsEmergencyCallRoutingPolicy", "teamsEmergencyCallRoutingPolicies"),
    ("CsTeamsMeetingPolicy", "teamsMeetingPolicies"),
    ("CsTeamsMeetingBroadcastPolicy", "teamsMeetingBroadcastPolicies"),
    ("CsTeamsMessagingPolicy", "teamsMessagingPolicies"),
    ("CsTeamsChannelsPolicy", "teamsChannelsPolicies"),
    ("CsTeamsAppPermissionPolicy", "teamsAppPermissionPolicies"),
    ("CsTeamsAppSetupPolicy", "teamsAppSetupPolicies"),
    ("CsTeamsFeedbackPolicy", "teamsFeedbackPolicies"),
    ("CsTeamsMobilityPolicy", "teamsMobilityPolicies"),
    ("CsTeamsUpdateManagementPolicy", "teamsUpdateManagementPolicies"),
    ("CsTeamsClientConfiguration", "teamsClientConfiguration"),
    ("CsTeamsMeetingConfiguration", "teamsMeetingConfiguration"),
    ("CsTeamsMeetingBroadcastConfiguration", "teamsMeetingBroadcastConfiguration"),
    ("CsTeamsGuestCallingConfiguration", "teamsGuestCallingConfiguration"),
    ("CsTeamsGuestMeetingConfiguration", "teamsGuestMeetingConfiguration"),
    ("CsTeamsGuestMessagingConfiguration", "teamsGuestMessagingConfiguration"),
    ("CsTenantFederationConfiguration", "tenantFederationConfiguration"),
    ("CsTenantNetworkRegion", "tenantNetworkRegions"),
    ("CsTenantNetworkSite", "tenantNetworkSites"),
    ("CsTenantNetworkSubnet", "tenantNetworkSubnets"),
    ("CsTenantTrustedIPAddress", "tenantTrustedIPAddresses"),
    ("CsOnlineApplicationInstance", "onlineApplicationInstances"),
    ("CsCallQueue", "callQueues"),
    ("CsAutoAttendant", "autoAttendants"),
    ("CsOnlineUser", "onlineUsers"),
)


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


class Collector:
    def __init__(self, client: TenantClient):
        self.client = client

    def collect_entity(self, entity_type: EntityType) -> Any:
        if entity_type is EntityType.PSTN_USAGE:
            return self.client.pstn_usages()
        return self.client.resource(entity_type).list()

    def collect_voice(self) -> Dict[str, str]:
        """Enterprise Voice configuration, keyed by archive entry name."""
        records: Dict[str, str] = {}
        for entity_type in EntityType:
            console.step(f"Exporting {entity_type.archive_name} …")
            data = self.collect_entity(entity_type)
            if isinstance(data, list):
                console.info(f"{len(data)} record(s)")
            records[entity_type.archive_name] = to_json(data)
        return records

    def collect_tenant(self) -> Dict[str, str]:
        """Every query in TENANT_QUERIES; a query the tenant rejects is skipped."""
        records: Dict[str, str] = {}
        for name, path in TENANT_QUERIES:
            console.step(f"Exporting {name} …")
            try:
                data = self.client.query(path)
            except RemoteOperationError as e:
                console.warn(f"{name} skipped: {e}")
                continue
            records[name] = to_json(data)
        return records


def run_backup(client: TenantClient, output_dir: str = ".", full_tenant: bool = False,
               today: Optional[date] = None) -> str:
    """Collect, pack and return the path of the written archive."""
    today = today or date.today()
    collector = Collector(client)

    if full_tenant:
        records = collector.collect_tenant()
        prefix = TENANT_PREFIX
    else:
        records = collector.collect_voice()
        prefix = VOICE_PREFIX

    try:
        display_name = client.tenant_display_name()
    except RemoteOperationError as e:
        console.warn(f"Tenant display name unavailable: {e}")
        display_name = ""

    destination = os.path.join(output_dir, backup_filename(prefix, today, display_name))
    return pack(records, destination)
