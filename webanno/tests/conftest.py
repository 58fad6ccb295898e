"""
Shared fixtures: in-memory database, repository in tmp_path, wired services.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from webanno.config import Settings
from webanno.db import Base
from webanno.feature.registry import build_feature_support_registry
from webanno.services import build_services
from webanno.services.annotator_state import AnnotatorStateStore
from webanno.services.user_service import ROLE_ADMIN, ROLE_USER

LAYER_PRESETS = [
    {
        "name": "named_entity",
        "ui_name": "Named entity",
        "type": "span",
        "features": [
            {"name": "value", "type": "string", "tags": ["PER", "ORG", "LOC", "OTH"], "tags_creatable": False},
            {"name": "identifier", "type": "string"},
        ],
    },
    {
        "name": "pos",
        "ui_name": "POS",
        "type": "span",
        "features": [{"name": "PosValue", "type": "string"}],
    },
    {
        "name": "dependency",
        "ui_name": "Dependency",
        "type": "relation",
        "attach_layer": "pos",
        "features": [{"name": "DependencyType", "type": "string"}],
    },
]

TEXT = "John lives in Berlin. He works for Siemens. Berlin is large.\nThe end."


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        repository_dir=tmp_path / "repository",
        jwt_secret="test-secret",
        default_window_size=2,
    )


@pytest.fixture
def registry():
    return build_feature_support_registry({})


@pytest.fixture
def services(db, settings, registry):
    return build_services(db, settings=settings, registry=registry, states=AnnotatorStateStore())


@pytest.fixture
def admin(services):
    return services.users.create_user("admin", "secret", roles=[ROLE_ADMIN, ROLE_USER])


@pytest.fixture
def annotator(services):
    return services.users.create_user("anna", "secret")


@pytest.fixture
def project(services, admin, annotator):
    project = services.projects.create_project("Test project", creator=admin)
    services.schema.create_default_layers(project, LAYER_PRESETS)
    services.projects.set_permission(project, annotator.username, ["user"])
    return project


@pytest.fixture
def source_document(services, project):
    return services.documents.upload_source_document(project, "doc1.txt", TEXT)


@pytest.fixture
def text():
    return TEXT
