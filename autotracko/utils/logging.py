from __future__ import annotations
import sys

from .clock import utc_now_iso

_VERBOSE = False

def set_verbose(enabled: bool) -> None:
    global _VERBOSE
    _VERBOSE = bool(enabled)

def log(msg: str) -> None:
    sys.stdout.write(f"[{utc_now_iso(timespec='seconds')}] {msg}\n")
    sys.stdout.flush()

def debug(msg: str) -> None:
    if not _VERBOSE:
        return
    sys.stdout.write(f"[{utc_now_iso(timespec='seconds')}] DEBUG: {msg}\n")
    sys.stdout.flush()

def warn(msg: str) -> None:
    sys.stderr.write(f"[{utc_now_iso(timespec='seconds')}] WARN: {msg}\n")
    sys.stderr.flush()

def error(msg: str) -> None:
    sys.stderr.write(f"[{utc_now_iso(timespec='seconds')}] ERROR: {msg}\n")
    sys.stderr.flush()
