"""
Service layer for WebAnno.

build_services() wires the services of one database session together: the
event publisher, the feature support registry and the document service
event adapter that removes documents before their project is removed.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from webanno.config import Settings, get_settings
from webanno.events import BeforeProjectRemovedEvent, EventPublisher
from webanno.feature.registry import FeatureSupportRegistry, get_feature_support_registry
from webanno.services.annotation_schema_service import AnnotationSchemaService
from webanno.services.annotator_state import AnnotatorStateStore, get_annotator_state_store
from webanno.services.document_service import DocumentService
from webanno.services.document_service_event_adapter import DocumentServiceEventAdapter
from webanno.services.export_service import ExportService
from webanno.services.guideline_importer import GuidelineImporter
from webanno.services.monitoring_service import MonitoringService
from webanno.services.preferences import PreferencesService
from webanno.services.project_service import ProjectService
from webanno.services.storage import RepositoryLayout
from webanno.services.user_service import UserService


@dataclass
class Services:
    db: Session
    settings: Settings
    layout: RepositoryLayout
    publisher: EventPublisher
    registry: FeatureSupportRegistry
    states: AnnotatorStateStore
    users: UserService
    projects: ProjectService
    schema: AnnotationSchemaService
    documents: DocumentService
    preferences: PreferencesService
    guidelines: GuidelineImporter
    monitoring: MonitoringService
    export: Optional[ExportService] = None


def build_services(
    db: Session,
    settings: Optional[Settings] = None,
    registry: Optional[FeatureSupportRegistry] = None,
    states: Optional[AnnotatorStateStore] = None,
) -> Services:
    """Create the services for a database session."""
    settings = settings if settings is not None else get_settings()
    registry = registry if registry is not None else get_feature_support_registry()
    states = states if states is not None else get_annotator_state_store()

    layout = RepositoryLayout(settings.repository_dir)
    publisher = EventPublisher()

    projects = ProjectService(db, layout, publisher)
    schema = AnnotationSchemaService(db, registry)
    documents = DocumentService(db, layout, publisher, schema)
    DocumentServiceEventAdapter(documents).register(publisher)
    publisher.subscribe(BeforeProjectRemovedEvent, lambda event: states.discard_project(event.project.id))

    services = Services(
        db=db,
        settings=settings,
        layout=layout,
        publisher=publisher,
        registry=registry,
        states=states,
        users=UserService(db),
        projects=projects,
        schema=schema,
        documents=documents,
        preferences=PreferencesService(db, settings),
        guidelines=GuidelineImporter(projects, tmp_dir=str(settings.tmp_dir)),
        monitoring=MonitoringService(projects, documents),
    )
    services.export = ExportService(services)
    return services
