"""
Annotation schema service.

Manages the annotation layers of a project and the features defined on
them. Every feature must be handled by exactly one registered feature
support; features no support accepts are rejected when they are created.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from annotation_model import LayerSchema
from annotation_model.upgrade import RELATION, SPAN

from webanno.db import AnnotationFeature, AnnotationLayer, Project
from webanno.errors import NotFoundError, ValidationFailedError
from webanno.feature.registry import FeatureSupportRegistry
from webanno.feature.support import LINK_NONE, LINK_WITH_ROLE, MULTI_VALUE_NONE

logger = logging.getLogger(__name__)

LAYER_TYPES = (SPAN, RELATION)


class AnnotationSchemaService:
    """Service for annotation layers and features."""

    def __init__(self, db: Session, registry: FeatureSupportRegistry):
        self.db = db
        self.registry = registry

    # =========================================================================
    # Layers
    # =========================================================================

    def create_layer(
        self,
        project: Project,
        name: str,
        type: str = SPAN,
        ui_name: Optional[str] = None,
        attach_layer: Optional[AnnotationLayer] = None,
        read_only: bool = False,
    ) -> AnnotationLayer:
        """
        Create an annotation layer.

        Args:
            project: Owning project
            name: Layer name, unique within the project
            type: span or relation
            ui_name: Display name (defaults to name)
            attach_layer: Span layer whose annotations a relation layer connects
            read_only: Whether annotations on the layer can be edited

        Returns:
            The created layer
        """
        if type not in LAYER_TYPES:
            raise ValidationFailedError(f"Invalid layer type [{type}]")
        if not name:
            raise ValidationFailedError("Layer name must not be empty")
        if self.exists_layer(project, name):
            raise ValidationFailedError(f"Layer [{name}] already exists in project [{project.id}]")
        if type == RELATION:
            if attach_layer is None or attach_layer.type != SPAN:
                raise ValidationFailedError(f"Relation layer [{name}] must attach to a span layer")

        layer = AnnotationLayer(
            project_id=project.id,
            name=name,
            ui_name=ui_name or name,
            type=type,
            attach_layer_id=attach_layer.id if attach_layer is not None else None,
            read_only=read_only,
        )
        self.db.add(layer)
        self.db.commit()
        self.db.refresh(layer)

        logger.info(f"Created {type} layer [{name}] in project {project.id}")
        return layer

    def exists_layer(self, project: Project, name: str) -> bool:
        return self.db.query(AnnotationLayer).filter(
            AnnotationLayer.project_id == project.id,
            AnnotationLayer.name == name,
        ).first() is not None

    def get_layer(self, project: Project, layer_id: int) -> AnnotationLayer:
        layer = self.db.query(AnnotationLayer).filter(
            AnnotationLayer.project_id == project.id,
            AnnotationLayer.id == layer_id,
        ).first()
        if layer is None:
            raise NotFoundError(f"Layer [{layer_id}] does not exist in project [{project.id}]")
        return layer

    def get_layer_by_name(self, project: Project, name: str) -> AnnotationLayer:
        layer = self.db.query(AnnotationLayer).filter(
            AnnotationLayer.project_id == project.id,
            AnnotationLayer.name == name,
        ).first()
        if layer is None:
            raise NotFoundError(f"Layer [{name}] does not exist in project [{project.id}]")
        return layer

    def list_layers(self, project: Project, enabled_only: bool = False) -> List[AnnotationLayer]:
        query = self.db.query(AnnotationLayer).filter(AnnotationLayer.project_id == project.id)
        if enabled_only:
            query = query.filter(AnnotationLayer.enabled.is_(True))
        return query.order_by(AnnotationLayer.id).all()

    def update_layer(self, layer: AnnotationLayer, **changes) -> AnnotationLayer:
        for key in ("ui_name", "enabled", "read_only"):
            if key in changes and changes[key] is not None:
                setattr(layer, key, changes[key])
        self.db.commit()
        self.db.refresh(layer)
        return layer

    def remove_layer(self, layer: AnnotationLayer) -> None:
        dependent = self.db.query(AnnotationLayer).filter(
            AnnotationLayer.attach_layer_id == layer.id
        ).first()
        if dependent is not None:
            raise ValidationFailedError(
                f"Layer [{layer.name}] is used by relation layer [{dependent.name}]"
            )
        self.db.delete(layer)
        self.db.commit()
        logger.info(f"Removed layer [{layer.name}] from project {layer.project_id}")

    # =========================================================================
    # Features
    # =========================================================================

    def create_feature(
        self,
        layer: AnnotationLayer,
        name: str,
        type: str,
        ui_name: Optional[str] = None,
        multi_value_mode: str = MULTI_VALUE_NONE,
        link_mode: str = LINK_NONE,
        tags: Optional[List[str]] = None,
        tags_creatable: bool = True,
        required: bool = False,
        visible: bool = True,
    ) -> AnnotationFeature:
        """
        Create a feature on a layer.

        Raises:
            ValidationFailedError: if the name is taken, the link target is not
                a span layer, or no feature support handles the feature
        """
        if not name:
            raise ValidationFailedError("Feature name must not be empty")
        if any(f.name == name for f in layer.features):
            raise ValidationFailedError(f"Feature [{name}] already exists on layer [{layer.name}]")

        feature = AnnotationFeature(
            project_id=layer.project_id,
            layer_id=layer.id,
            name=name,
            ui_name=ui_name or name,
            type=type,
            multi_value_mode=multi_value_mode,
            link_mode=link_mode,
            tags=list(tags) if tags else None,
            tags_creatable=tags_creatable,
            required=required,
            enabled=True,
            visible=visible,
        )

        if link_mode == LINK_WITH_ROLE:
            target = self.db.query(AnnotationLayer).filter(
                AnnotationLayer.project_id == layer.project_id,
                AnnotationLayer.name == type,
            ).first()
            if target is None or target.type != SPAN:
                raise ValidationFailedError(
                    f"Link feature [{name}] must point to a span layer, got [{type}]"
                )

        try:
            support = self.registry.get_feature_support(feature)
        except ValueError as e:
            raise ValidationFailedError(str(e)) from e

        self.db.add(feature)
        self.db.commit()
        self.db.refresh(feature)

        logger.info(f"Created feature [{name}] on layer [{layer.name}] ({support.support_id})")
        return feature

    def get_feature(self, layer: AnnotationLayer, name: str) -> AnnotationFeature:
        for feature in layer.features:
            if feature.name == name:
                return feature
        raise NotFoundError(f"Feature [{name}] does not exist on layer [{layer.name}]")

    def get_feature_by_id(self, project: Project, feature_id: int) -> AnnotationFeature:
        feature = self.db.query(AnnotationFeature).filter(
            AnnotationFeature.project_id == project.id,
            AnnotationFeature.id == feature_id,
        ).first()
        if feature is None:
            raise NotFoundError(f"Feature [{feature_id}] does not exist in project [{project.id}]")
        return feature

    def list_features(self, layer: AnnotationLayer, enabled_only: bool = False) -> List[AnnotationFeature]:
        return [f for f in layer.features if f.enabled or not enabled_only]

    def update_feature(self, feature: AnnotationFeature, **changes) -> AnnotationFeature:
        for key in ("ui_name", "tags", "tags_creatable", "required", "enabled", "visible"):
            if key in changes and changes[key] is not None:
                setattr(feature, key, changes[key])
        self.db.commit()
        self.db.refresh(feature)
        return feature

    def remove_feature(self, feature: AnnotationFeature) -> None:
        self.db.delete(feature)
        self.db.commit()
        logger.info(f"Removed feature [{feature.name}] from layer {feature.layer_id}")

    # =========================================================================
    # Presets and document upgrade
    # =========================================================================

    def create_default_layers(self, project: Project, presets: List[Dict[str, Any]]) -> List[AnnotationLayer]:
        """Create the layer presets from config.yaml in a new project."""
        created = []
        for preset in presets:
            attach_layer = None
            if preset.get("attach_layer"):
                attach_layer = self.get_layer_by_name(project, preset["attach_layer"])

            layer = self.create_layer(
                project,
                name=preset["name"],
                type=preset.get("type", SPAN),
                ui_name=preset.get("ui_name"),
                attach_layer=attach_layer,
                read_only=preset.get("read_only", False),
            )
            for feature in preset.get("features", []):
                self.create_feature(
                    layer,
                    name=feature["name"],
                    type=feature.get("type", "string"),
                    ui_name=feature.get("ui_name"),
                    multi_value_mode=feature.get("multi_value_mode", MULTI_VALUE_NONE),
                    link_mode=feature.get("link_mode", LINK_NONE),
                    tags=feature.get("tags"),
                    tags_creatable=feature.get("tags_creatable", True),
                    required=feature.get("required", False),
                )
            self.db.refresh(layer)
            created.append(layer)
        return created

    def get_layer_schemas(self, project: Project) -> List[LayerSchema]:
        """Current layer definitions of a project, used to upgrade annotation documents."""
        schemas = []
        for layer in self.list_layers(project):
            features = {}
            for feature in layer.features:
                features[feature.name] = self.registry.get_feature_support(feature).default_value(feature)
            schemas.append(LayerSchema(name=layer.name, type=layer.type, features=features))
        return schemas
