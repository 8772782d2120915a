"""
Environment configuration.

ENV:
  TEAMS_TOKEN        = admin bearer token (prompted for when unset)
  TEAMS_ADMIN_BASE   = https://api.interfaces.records.teams.microsoft.com
  TEAMS_TENANT_ID    = optional tenant id (partner / delegated admin)
  TEAMS_TIMEOUT      = request timeout in seconds (default 30)

TLS (optional):
  REQUESTS_CA_BUNDLE or SSL_CERT_FILE = path to PEM bundle
  TEAMS_VERIFY=false -> disable TLS verification (testing only)

Debug (optional):
  TEAMS_DEBUG=true -> print request URLs/params before calls
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Union

import certifi

DEFAULT_BASE = "https://api.interfaces.records.teams.microsoft.com"
DEFAULT_TIMEOUT = 30


@dataclass(frozen=True)
class Settings:
    base: str = DEFAULT_BASE
    token: str = ""
    tenant_id: str = ""
    override_domain: str = ""
    timeout: float = DEFAULT_TIMEOUT
    verify: Union[bool, str] = True
    debug: bool = False


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(override_domain: Optional[str] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ

    ca_bundle = env.get("REQUESTS_CA_BUNDLE") or env.get("SSL_CERT_FILE")
    if ca_bundle:
        verify: Union[bool, str] = ca_bundle
    elif _flag(env.get("TEAMS_VERIFY"), True):
        verify = certifi.where()
    else:
        verify = False

    try:
        timeout = float(env.get("TEAMS_TIMEOUT") or DEFAULT_TIMEOUT)
    except ValueError:
        timeout = DEFAULT_TIMEOUT

    return Settings(
        base=(env.get("TEAMS_ADMIN_BASE") or DEFAULT_BASE).strip().rstrip("/"),
        token=(env.get("TEAMS_TOKEN") or "").strip(),
        tenant_id=(env.get("TEAMS_TENANT_ID") or "").strip(),
        override_domain=(override_domain or "").strip(),
        timeout=timeout,
        verify=verify,
        debug=_flag(env.get("TEAMS_DEBUG"), False),
    )
