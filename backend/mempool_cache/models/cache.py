"""Result models for cache operations"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class WriteResult:
    """
    Per-key outcome of a fan-out write (add/remove transactions).
    Lets callers tell "one of a thousand failed" apart from "all failed".
    """

    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failed)


@dataclass
class CacheLoadSummary:
    """What a restore managed to load from the store"""

    blocks: int = 0
    block_summaries: int = 0
    transactions: int = 0
    finished_at: Optional[float] = None
