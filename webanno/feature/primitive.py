"""Support for single-valued string, integer, float and boolean features."""

from typing import Any, List

from webanno.feature.support import LINK_NONE, MULTI_VALUE_NONE, FeatureSupport

TYPE_STRING = "string"
TYPE_INTEGER = "integer"
TYPE_FLOAT = "float"
TYPE_BOOLEAN = "boolean"

PRIMITIVE_TYPES = [TYPE_STRING, TYPE_INTEGER, TYPE_FLOAT, TYPE_BOOLEAN]

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


class PrimitiveFeatureSupport(FeatureSupport):
    support_id = "primitive"
    order = 100

    def accepts(self, feature) -> bool:
        return (
            feature.multi_value_mode == MULTI_VALUE_NONE
            and feature.link_mode == LINK_NONE
            and feature.type in PRIMITIVE_TYPES
        )

    def feature_types(self) -> List[str]:
        return list(PRIMITIVE_TYPES)

    def convert_value(self, feature, value: Any) -> Any:
        if value is None or value == "":
            return None

        if feature.type == TYPE_STRING:
            value = str(value)
            if feature.tags and not feature.tags_creatable and value not in feature.tags:
                raise ValueError(
                    f"Value [{value}] is not in the tagset of feature [{feature.name}]"
                )
            return value

        if feature.type == TYPE_BOOLEAN:
            if isinstance(value, bool):
                return value
            normalized = str(value).strip().lower()
            if normalized in _TRUE:
                return True
            if normalized in _FALSE:
                return False
            raise ValueError(f"Value [{value}] is not a boolean")

        # Booleans are ints in Python - never accept them as numbers
        if isinstance(value, bool):
            raise ValueError(f"Value [{value}] is not a number")

        try:
            if feature.type == TYPE_INTEGER:
                if isinstance(value, float) and not value.is_integer():
                    raise ValueError(f"Value [{value}] is not an integer")
                return int(value)
            return float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Value [{value}] is not a valid {feature.type}") from e

    def render_value(self, feature, value: Any) -> str:
        if value is None:
            return ""
        if feature.type == TYPE_BOOLEAN:
            return feature.ui_name if value else ""
        return str(value)
