"""
Session-scoped display labels for peers.
"""

from typing import Dict, List

LABEL_PREFIX = "Peer-"


class PeerRegistry:
    """
    Assigns "Peer-1", "Peer-2", ... in first-seen order.

    A label never changes and is never reused for the lifetime of the
    registry (one session).
    """

    def __init__(self, prefix: str = LABEL_PREFIX):
        self.prefix = prefix
        self._labels: Dict[str, str] = {}
        self._next_index = 1

    def label_for(self, peer_id: str) -> str:
        """Existing label for `peer_id`, allocating the next one on first sight."""
        label = self._labels.get(peer_id)
        if label is None:
            label = f"{self.prefix}{self._next_index}"
            self._next_index += 1
            self._labels[peer_id] = label
        return label

    def labels(self) -> List[str]:
        """Labels in allocation order."""
        return list(self._labels.values())

    def __len__(self) -> int:
        return len(self._labels)

    def __contains__(self, peer_id: str) -> bool:
        return peer_id in self._labels
