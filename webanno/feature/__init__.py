from webanno.feature.registry import (
    FeatureSupportRegistry,
    build_feature_support_registry,
    get_feature_support_registry,
)
from webanno.feature.support import FeatureSupport

__all__ = [
    "FeatureSupport",
    "FeatureSupportRegistry",
    "build_feature_support_registry",
    "get_feature_support_registry",
]
