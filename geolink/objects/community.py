"""Community membership of graph vertices, keyed by vertex name."""

from dataclasses import dataclass
from typing import Any, Hashable, Optional

import pandas as pd


@dataclass(frozen=True, eq=False)
class CommunityAssignment:
    """Mapping from vertex name to community label.

    Vertices are identified by name only. Any positional numbering used by a
    graph backend never appears here.

    Attributes:
        membership: Vertex name -> community label, one entry per vertex.
        method: Name of the algorithm that produced the labels.
        modularity: Modularity of the partition, if computed.
    """

    membership: dict
    method: str = "unknown"
    modularity: Optional[float] = None

    def __post_init__(self) -> None:
        """Copy membership so the snapshot cannot change."""
        object.__setattr__(self, "membership", dict(self.membership))

    def __len__(self) -> int:
        return len(self.membership)

    def __getitem__(self, name: Hashable) -> Any:
        return self.membership[name]

    def __contains__(self, name: Hashable) -> bool:
        return name in self.membership

    @property
    def labels(self) -> list:
        """Distinct community labels, sorted."""
        return sorted(set(self.membership.values()))

    def communities(self) -> dict[Any, list]:
        """Community label -> sorted member names."""
        groups: dict[Any, list] = {}
        for name, label in self.membership.items():
            groups.setdefault(label, []).append(name)
        return {label: sorted(groups[label], key=str) for label in sorted(groups)}

    def to_frame(
        self, name_col: str = "name", community_col: str = "community"
    ) -> pd.DataFrame:
        """Two-column table of (name, community)."""
        return pd.DataFrame(
            {
                name_col: list(self.membership.keys()),
                community_col: list(self.membership.values()),
            }
        )

    def __repr__(self) -> str:
        """String representation."""
        mod = f", modularity={self.modularity:.3f}" if self.modularity is not None else ""
        return (
            f"CommunityAssignment(n_vertices={len(self)}, "
            f"n_communities={len(self.labels)}, method={self.method}{mod})"
        )
