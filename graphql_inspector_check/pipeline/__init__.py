"""Check pipeline stage entrypoints."""

from .builder import build, build_pair, detect_format
from .orchestrator import CheckRunResult, run_check, run_check_async
from .policy import PolicyContext, resolve
from .refs import decide
from .report import create_summary, emit
from .sources import build_references, fetch, fetch_pair

__all__ = [
    "CheckRunResult",
    "PolicyContext",
    "build",
    "build_pair",
    "build_references",
    "create_summary",
    "decide",
    "detect_format",
    "emit",
    "fetch",
    "fetch_pair",
    "resolve",
    "run_check",
    "run_check_async",
]
