"""
Branch state scanning.

Public API:
    - BranchStateScanner: Scans recent local and remote branches
    - BranchTaskStateEntry, EntryKind, ScanResult: scan output
    - CancellationToken: Cooperative cancellation shared by the passes
"""

from branchboard.core.scan.models import (
    LOCAL_BRANCH_LABEL,
    BranchTaskStateEntry,
    CancellationToken,
    EntryKind,
    ScanResult,
)
from branchboard.core.scan.scanner import BranchStateScanner, classify_path

__all__ = [
    "BranchStateScanner",
    "BranchTaskStateEntry",
    "CancellationToken",
    "EntryKind",
    "LOCAL_BRANCH_LABEL",
    "ScanResult",
    "classify_path",
]
