"""
Cost Map Manager

Owns the per-source cost maps and publishes the fused, inflated map used by
the planners.

Sources are updated from their own threads (perception callbacks, bumper
events, ...). The manager only ever reads their immutable snapshots, does
the expensive inflate + fuse work without holding any lock, and swaps the
result in under a short lock. Readers therefore always get a complete map.

Usage:
    manager = CostMapManager(CostMapConfig(resolution=0.05), robot_radius=0.2)
    manager.add_source(bumper_map)          # anything with .source and .snapshot()
    manager.set_costmap(floorplan_costmap)  # static map pushed once

    manager.start()                         # optional background recompute
    costmap = manager.get_published()
"""

import time
import logging
import threading
from typing import Callable, Dict, List, Optional
from dataclasses import dataclass

from .costmap import CostMap, Source
from .fuser import fuse_costmaps
from .inflation import CostMapInflator, InflationType

logger = logging.getLogger(__name__)


@dataclass
class CostMapConfig:
    """Cost map configuration."""
    resolution: float = 0.05                # meters per cell
    inflation_type: InflationType = InflationType.FULL_RADIUS
    inflation_factor: float = 1.0           # only used with FACTOR_RADIUS
    update_interval: float = 0.1            # seconds between background recomputes

    def __post_init__(self):
        if isinstance(self.inflation_type, str):
            try:
                self.inflation_type = InflationType[self.inflation_type.upper()]
            except KeyError:
                raise ValueError(f"Unknown inflation type: {self.inflation_type}") from None
        if self.resolution <= 0:
            raise ValueError(f"resolution must be positive, got {self.resolution}")
        if self.inflation_factor <= 0:
            raise ValueError(f"inflation_factor must be positive, got {self.inflation_factor}")
        if self.update_interval <= 0:
            raise ValueError(f"update_interval must be positive, got {self.update_interval}")


class CostMapManager:
    """Fuses and publishes cost maps from several sources."""

    def __init__(self, config: Optional[CostMapConfig] = None, robot_radius: float = 0.0):
        """
        Args:
            config: CostMapConfig, defaults are used if None
            robot_radius: Robot radius (m) used for inflation
        """
        self.config = config or CostMapConfig()
        self._inflator = CostMapInflator(
            robot_radius,
            self.config.inflation_type,
            self.config.inflation_factor
        )

        self._lock = threading.Lock()
        self._providers: Dict[Source, object] = {}
        self._static: Dict[Source, CostMap] = {}
        self._published: Optional[CostMap] = None
        self._dirty = False
        self._listeners: List[Callable[[Optional[CostMap]], None]] = []

        self._thread: Optional[threading.Thread] = None
        self._running = False

    # ----------------------------------------------------------------- sources

    def add_source(self, provider):
        """
        Register a live source.

        The provider needs a `source` attribute and a `snapshot()` method
        returning an immutable CostMap or None. If it exposes `on_update`, the
        manager marks itself dirty whenever the provider changes.
        """
        with self._lock:
            self._providers[provider.source] = provider
            self._dirty = True
        if hasattr(provider, 'on_update'):
            provider.on_update(lambda _provider: self.mark_dirty())

    def set_costmap(self, costmap: CostMap):
        """Replace the static contribution of costmap.source with a snapshot of it."""
        snapshot = costmap.snapshot()
        with self._lock:
            self._static[snapshot.source] = snapshot
            self._dirty = True

    def remove_source(self, source: Source):
        with self._lock:
            self._providers.pop(source, None)
            self._static.pop(source, None)
            self._dirty = True

    def mark_dirty(self):
        with self._lock:
            self._dirty = True

    @property
    def is_dirty(self) -> bool:
        with self._lock:
            return self._dirty

    def on_publish(self, callback: Callable[[Optional[CostMap]], None]):
        """Register callback receiving every newly published map."""
        self._listeners.append(callback)

    # -------------------------------------------------------------- publishing

    def recompute(self) -> Optional[CostMap]:
        """
        Inflate and fuse the current source snapshots, then publish the result.

        Returns:
            The newly published map, None if no source has data
        """
        with self._lock:
            providers = list(self._providers.values())
            snapshots = list(self._static.values())
            self._dirty = False

        snapshots.extend(p.snapshot() for p in providers)

        # Heavy work happens outside of the lock
        layers = []
        for snapshot in snapshots:
            if snapshot is None or snapshot.is_empty():
                continue
            if snapshot.requires_inflation():
                snapshot = self._inflator.inflate(snapshot)
            layers.append(snapshot)
        fused = fuse_costmaps(layers, Source.OUTPUT_COSTMAP_FULLY_INFLATED)

        with self._lock:
            self._published = fused

        logger.debug(f"[CostMapManager] Published {fused} from {len(layers)} layers")
        for callback in self._listeners:
            callback(fused)
        return fused

    def get_published(self) -> Optional[CostMap]:
        """Latest published map (immutable)."""
        with self._lock:
            return self._published

    # ------------------------------------------------------ background thread

    def start(self, interval: Optional[float] = None):
        """Start recomputing in the background whenever a source changed."""
        if self._running:
            return
        period = interval if interval is not None else self.config.update_interval
        self._running = True
        self._thread = threading.Thread(target=self._update_loop, args=(period,), daemon=True)
        self._thread.start()
        logger.info(f"[CostMapManager] Started, period {period:.2f}s")

    def stop(self):
        """Stop the background thread."""
        self._running = False
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None
        logger.info("[CostMapManager] Stopped")

    def _update_loop(self, period: float):
        while self._running:
            if self.is_dirty:
                self.recompute()
            time.sleep(period)
