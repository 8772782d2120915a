#!/usr/bin/env python3
"""
Back up Teams Enterprise Voice configuration to a zip archive.

Exports dial plans, voice routes, voice routing policies, PSTN usages,
translation rules and PSTN gateways, one JSON entry per type:

  EVBackup_<yyyy-MM-dd> <Tenant display name>.zip
    Dialplans.txt, VoiceRoutes.txt, VoiceRoutingPolicies.txt,
    PSTNUsages.txt, TranslationRules.txt, PSTNGateways.txt

With --full-tenant, several dozen policy, configuration and user queries are
exported instead (TenantBackup_...zip). Those archives cannot be restored.

ENV: see evbackup.config (TEAMS_TOKEN, TEAMS_ADMIN_BASE, TEAMS_TENANT_ID, ...)
"""

import argparse
import os
from typing import List, Optional

from . import console
from .collector import run_backup
from .config import load_settings
from .errors import RemoteOperationError, SessionError
from .session import TenantClient, connect


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(
        description="Back up Teams Enterprise Voice configuration to a zip archive."
    )
    ap.add_argument("--override-domain", default=None,
                    help="Admin domain to authenticate against when it is not the tenant's default domain")
    ap.add_argument("--full-tenant", action="store_true",
                    help="Export every tenant policy/configuration/user query, not only Enterprise Voice")
    ap.add_argument("--output-dir", default=".", help="Where to write the archive (default: .)")
    args = ap.parse_args(argv)

    if not os.path.isdir(args.output_dir):
        console.die(f"Output directory not found: {args.output_dir}")

    settings = load_settings(override_domain=args.override_domain)
    try:
        session = connect(settings)
    except SessionError as e:
        console.die(str(e))

    try:
        path = run_backup(TenantClient(session), args.output_dir, full_tenant=args.full_tenant)
    except RemoteOperationError as e:
        console.die(f"Backup failed: {e}")
    except OSError as e:
        console.die(f"Could not write archive: {e}")

    console.ok(f"Wrote {path}")


if __name__ == "__main__":
    main()
