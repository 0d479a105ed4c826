"""Reconcile declarative drawables against a rendering surface.

Simulation code produces plain lists of primitives (flow lines, depth labels,
contours, markers), each with a stable ``key``. ``OverlayReconciler`` keeps
track of what it has put on a surface and, given a new list, removes what
disappeared, adds what is new and replaces what changed. The surface itself
only needs ``add`` and ``remove``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterable, Protocol, Tuple

logger = logging.getLogger(__name__)


class OverlaySurface(Protocol):
    """Anything that can show and hide drawables."""

    def add(self, primitive: Any) -> Any:
        """Draw ``primitive`` and return a handle for later removal."""
        ...

    def remove(self, handle: Any) -> None:
        """Remove a previously added drawable."""
        ...


@dataclass(frozen=True)
class ReconcileStats:
    added: int = 0
    removed: int = 0
    kept: int = 0


class OverlayReconciler:
    """
    Diff-and-patch adapter between primitive lists and a surface.

    Attributes:
        surface: Rendering surface receiving add/remove calls
    """

    def __init__(self, surface: OverlaySurface):
        self.surface = surface
        self._current: Dict[Hashable, Tuple[Any, Any]] = {}

    def __len__(self) -> int:
        return len(self._current)

    def reconcile(self, primitives: Iterable[Any]) -> ReconcileStats:
        """
        Make the surface show exactly ``primitives``.

        Primitives whose key is already on the surface with an equal value
        are left alone. When keys repeat in ``primitives`` the last one wins.
        """
        desired: Dict[Hashable, Any] = {}
        for primitive in primitives:
            desired[primitive.key] = primitive

        added = removed = kept = 0

        for key in list(self._current):
            primitive, handle = self._current[key]
            if key not in desired or desired[key] != primitive:
                self.surface.remove(handle)
                del self._current[key]
                removed += 1

        for key, primitive in desired.items():
            if key in self._current:
                kept += 1
                continue
            self._current[key] = (primitive, self.surface.add(primitive))
            added += 1

        logger.debug(f"Overlay reconciled: +{added} -{removed} ={kept}")
        return ReconcileStats(added=added, removed=removed, kept=kept)

    def clear(self) -> int:
        """Remove everything this reconciler put on the surface."""
        count = len(self._current)
        for _, handle in self._current.values():
            self.surface.remove(handle)
        self._current.clear()
        return count
