"""
Support for link (slot) features.

A link feature holds a list of slots, each pointing at a span annotation of
the layer named by the feature type and labelled with a role.
"""

from typing import Any, Dict, List

from annotation_model import AnnotationError

from webanno.feature.support import LINK_WITH_ROLE, MULTI_VALUE_ARRAY, FeatureSupport


class SlotFeatureSupport(FeatureSupport):
    support_id = "slot"
    order = 200

    def accepts(self, feature) -> bool:
        return (
            feature.multi_value_mode == MULTI_VALUE_ARRAY
            and feature.link_mode == LINK_WITH_ROLE
        )

    def feature_types(self) -> List[str]:
        # Link features are typed by the span layer they point to
        return []

    def convert_value(self, feature, value: Any) -> List[Dict[str, Any]]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError(f"Link feature [{feature.name}] expects a list of slots")

        slots = []
        for slot in value:
            if not isinstance(slot, dict) or "target" not in slot:
                raise ValueError(f"Invalid slot for link feature [{feature.name}]: {slot!r}")
            target = slot["target"]
            if isinstance(target, bool) or not isinstance(target, int):
                raise ValueError(f"Slot target must be an annotation id, got {target!r}")
            role = slot.get("role") or ""
            slots.append({"role": str(role), "target": target})
        return slots

    def check_in_document(self, feature, value: Any, document) -> None:
        for slot in value or []:
            try:
                span = document.get_span(slot["target"])
            except AnnotationError as e:
                raise ValueError(str(e)) from e
            if span.layer != feature.type:
                raise ValueError(
                    f"Slot target [{span.id}] is on layer [{span.layer}], "
                    f"expected [{feature.type}]"
                )

    def render_value(self, feature, value: Any) -> str:
        return " ".join(
            f"{slot['role']}:{slot['target']}" if slot["role"] else str(slot["target"])
            for slot in value or []
        )

    def default_value(self, feature) -> Any:
        return []
