"""Operator-facing console output."""

import sys
from typing import Any, Dict, List, NoReturn

_debug = False


def set_debug(enabled: bool) -> None:
    global _debug
    _debug = bool(enabled)


def step(msg: str) -> None:
    print(f"▶ {msg}", flush=True)


def ok(msg: str) -> None:
    print(f"✅ {msg}", flush=True)


def info(msg: str) -> None:
    print(f"   {msg}", flush=True)


def warn(msg: str) -> None:
    print(f"WARN: {msg}", file=sys.stderr, flush=True)


def err(msg: str) -> None:
    print(f"❌ {msg}", file=sys.stderr, flush=True)


def dbg(*args) -> None:
    if _debug:
        print("DEBUG:", *args, flush=True)


def kv_block(title: str, kv: Dict[str, Any], order: List[str]) -> None:
    print(title)
    width = max((len(k) for k in order), default=0)
    for k in order:
        v = kv.get(k, "")
        if v is None:
            v = ""
        print(f"  {k:<{width}} : {v}")
    print("", flush=True)


def die(msg: str, code: int = 1) -> NoReturn:
    print(f"ERROR: {msg}", file=sys.stderr, flush=True)
    sys.exit(code)
