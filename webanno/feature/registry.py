"""
Registry of feature support strategies.

Feature supports are registered while the application is wired together.
Lookups then follow two guarantees:

- Stable order: get_feature_supports() returns the supports sorted by their
  ``order`` (ties keep registration order). The order is computed on first
  use and memoized; registering another support afterwards is an error.
- First match, cached forever: get_feature_support(feature) returns the
  first support in that order which accepts the feature. The result is
  cached by feature id and never evicted. Features and supports do not
  change identity after creation, so stale entries for deleted features
  are harmless.

Lookups run on every render, which is why they are cached.
"""

import logging
import threading
from functools import lru_cache
from typing import Any, Dict, List, Optional

from webanno.config import is_feature_support_enabled, load_app_config
from webanno.feature.primitive import PrimitiveFeatureSupport
from webanno.feature.slot import SlotFeatureSupport
from webanno.feature.support import FeatureSupport

logger = logging.getLogger(__name__)


class FeatureSupportRegistry:
    """Discovers, orders and looks up feature supports."""

    def __init__(self):
        self._beans: Dict[str, FeatureSupport] = {}
        self._sorted: Optional[List[FeatureSupport]] = None
        self._support_cache: Dict[Any, FeatureSupport] = {}
        self._lock = threading.Lock()

    def register(self, name: str, bean: Any) -> Any:
        """
        Offer a newly created component to the registry.

        Feature supports are collected; any other object is ignored. The
        component is returned unchanged.
        """
        if isinstance(bean, FeatureSupport):
            with self._lock:
                if self._sorted is not None:
                    raise RuntimeError(
                        f"Cannot register feature support [{name}]: registry already initialized"
                    )
                self._beans[name] = bean
            logger.debug(f"Found feature support: {name}")
        return bean

    def get_feature_supports(self) -> List[FeatureSupport]:
        """All registered supports in priority order."""
        if self._sorted is None:
            with self._lock:
                if self._sorted is None:
                    # sorted() is stable: equal orders keep registration order
                    self._sorted = sorted(self._beans.values(), key=lambda s: s.order)
        return list(self._sorted)

    def get_feature_support(self, feature) -> FeatureSupport:
        """
        Get the support responsible for a feature.

        Raises:
            ValueError: if no registered support accepts the feature
        """
        support = self._support_cache.get(feature.id) if feature.id is not None else None

        if support is None:
            for candidate in self.get_feature_supports():
                if candidate.accepts(feature):
                    support = candidate
                    # Unsaved features have no identity to cache by
                    if feature.id is not None:
                        with self._lock:
                            support = self._support_cache.setdefault(feature.id, candidate)
                    break

        if support is None:
            raise ValueError(f"Unsupported feature: [{feature.name}]")

        return support

    def get_feature_support_by_id(self, support_id: str) -> FeatureSupport:
        for support in self.get_feature_supports():
            if support.support_id == support_id:
                return support
        raise ValueError(f"Unknown feature support: [{support_id}]")


def build_feature_support_registry(config: Optional[Dict[str, Any]] = None) -> FeatureSupportRegistry:
    """Create a registry holding the built-in supports enabled in config.yaml."""
    config = load_app_config() if config is None else config
    registry = FeatureSupportRegistry()
    for support in (PrimitiveFeatureSupport(), SlotFeatureSupport()):
        if is_feature_support_enabled(support.support_id, config):
            registry.register(f"{support.support_id}FeatureSupport", support)
        else:
            logger.info(f"Feature support disabled in config.yaml: {support.support_id}")
    return registry


@lru_cache()
def get_feature_support_registry() -> FeatureSupportRegistry:
    """Get the application-wide registry."""
    return build_feature_support_registry()
