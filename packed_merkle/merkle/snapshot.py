"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Packed Merkle, a product of Garudex Labs

Point-in-time capture of a packed Merkle tree.

The core never writes to disk. A TreeSnapshot is what a host persists or
ships when it wants to record the exposed fields of a tree: leaf count,
node count, root and the full digest array.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class TreeSnapshot:
    """
    Snapshot of a tree's digest array.

    Attributes:
        total: Node count
        leaves: Leaf count
        root: Root digest, or None for an empty tree
        digests: Copy of the packed array; None marks an unresolved slot
        algorithm: Name of the hash algorithm the digests were made with
        snapshot_timestamp: When the snapshot was taken (UTC)
    """
    total: int
    leaves: int
    root: Optional[bytes]
    digests: Tuple[Optional[bytes], ...]
    algorithm: str
    snapshot_timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def unresolved_slots(self) -> int:
        return sum(1 for digest in self.digests if digest is None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "leaves": self.leaves,
            "root": self.root.hex() if self.root is not None else None,
            "digests": [d.hex() if d is not None else None for d in self.digests],
            "algorithm": self.algorithm,
            "snapshot_timestamp": self.snapshot_timestamp.isoformat(),
        }
