"""
SQLAlchemy models for WebAnno.

Projects, users, permissions, documents, annotation layers and features are
stored in the database. Document texts, annotation documents and guideline
files live in the filesystem repository (see Settings.repository_dir).
"""

from datetime import datetime

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint, create_engine,
)
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from webanno.config import settings
from webanno.states import AnnotationDocumentState, SourceDocumentState

Base = declarative_base()


class User(Base):
    """Application user (user directory)."""

    __tablename__ = "users"

    username = Column(String(255), primary_key=True)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    enabled = Column(Boolean, default=True, nullable=False)
    roles = Column(JSON, default=list)  # ROLE_ADMIN, ROLE_USER
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"User({self.username!r})"


class Project(Base):
    """Annotation project."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    mode = Column(String(50), default="annotation", nullable=False)
    disable_export = Column(Boolean, default=False, nullable=False)
    script_direction = Column(String(3), default="LTR", nullable=False)  # LTR, RTL
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    permissions = relationship("ProjectPermission", back_populates="project", cascade="all, delete-orphan")
    layers = relationship("AnnotationLayer", back_populates="project", cascade="all, delete-orphan")
    constraint_sets = relationship("ConstraintSet", back_populates="project", cascade="all, delete-orphan")


class ProjectPermission(Base):
    """Permission level of a user in a project (admin, curator, user)."""

    __tablename__ = "project_permissions"
    __table_args__ = (
        UniqueConstraint("project_id", "username", "level", name="uq_project_permissions"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    username = Column(String(255), ForeignKey("users.username"), nullable=False)
    level = Column(String(50), nullable=False)

    # Relationships
    project = relationship("Project", back_populates="permissions")


class SourceDocument(Base):
    """Document uploaded to a project."""

    __tablename__ = "source_documents"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_source_documents_project_name"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    name = Column(String(255), nullable=False)
    format = Column(String(50), default="text", nullable=False)
    state = Column(String(50), default=SourceDocumentState.NEW.value, nullable=False)
    timestamp = Column(DateTime, nullable=True)  # last annotation activity
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    project = relationship("Project")
    annotation_documents = relationship(
        "AnnotationDocument", back_populates="document", cascade="all, delete-orphan"
    )


class AnnotationDocument(Base):
    """Per-user working copy record of a source document."""

    __tablename__ = "annotation_documents"
    __table_args__ = (
        UniqueConstraint("document_id", "user", name="uq_annotation_documents_document_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    document_id = Column(Integer, ForeignKey("source_documents.id"), nullable=False)
    name = Column(String(255), nullable=False)
    user = Column(String(255), nullable=False)
    state = Column(String(50), default=AnnotationDocumentState.NEW.value, nullable=False)
    timestamp = Column(DateTime, nullable=True)
    sentence_accessed = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    document = relationship("SourceDocument", back_populates="annotation_documents")


class AnnotationLayer(Base):
    """Annotation layer (span or relation) of a project."""

    __tablename__ = "annotation_layers"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_annotation_layers_project_name"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    name = Column(String(255), nullable=False)
    ui_name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)  # span, relation
    # Relation layers connect annotations of this span layer
    attach_layer_id = Column(Integer, ForeignKey("annotation_layers.id"), nullable=True)
    enabled = Column(Boolean, default=True, nullable=False)
    read_only = Column(Boolean, default=False, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="layers")
    attach_layer = relationship("AnnotationLayer", remote_side=[id])
    features = relationship(
        "AnnotationFeature", back_populates="layer", cascade="all, delete-orphan",
        order_by="AnnotationFeature.id",
    )


class AnnotationFeature(Base):
    """Feature of an annotation layer."""

    __tablename__ = "annotation_features"
    __table_args__ = (
        UniqueConstraint("layer_id", "name", name="uq_annotation_features_layer_name"),
        # Registry lookups are cached by id, so ids of removed features must not come back
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    layer_id = Column(Integer, ForeignKey("annotation_layers.id"), nullable=False)
    name = Column(String(255), nullable=False)
    ui_name = Column(String(255), nullable=False)
    # string, integer, float, boolean - or the name of a span layer for link features
    type = Column(String(255), nullable=False)
    multi_value_mode = Column(String(50), default="NONE", nullable=False)  # NONE, ARRAY
    link_mode = Column(String(50), default="NONE", nullable=False)  # NONE, WITH_ROLE
    tags = Column(JSON, nullable=True)  # allowed values (tagset)
    tags_creatable = Column(Boolean, default=True, nullable=False)
    required = Column(Boolean, default=False, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    visible = Column(Boolean, default=True, nullable=False)

    # Relationships
    layer = relationship("AnnotationLayer", back_populates="features")


class ConstraintSet(Base):
    """Constraint rules of a project."""

    __tablename__ = "constraint_sets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    name = Column(String(255), nullable=False)
    rules = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    project = relationship("Project", back_populates="constraint_sets")


class AnnotationPreference(Base):
    """Annotation editor preferences of a user in a project."""

    __tablename__ = "annotation_preferences"
    __table_args__ = (
        UniqueConstraint("username", "project_id", name="uq_annotation_preferences_user_project"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# Indexes
Index("idx_source_documents_project_id", SourceDocument.project_id)
Index("idx_annotation_documents_document_id", AnnotationDocument.document_id)
Index("idx_annotation_documents_user", AnnotationDocument.user)
Index("idx_annotation_layers_project_id", AnnotationLayer.project_id)
Index("idx_annotation_features_layer_id", AnnotationFeature.layer_id)
Index("idx_project_permissions_username", ProjectPermission.username)


# Database engine and session factory
_engine = None
_SessionLocal = None


def get_engine():
    """Get or create database engine."""
    global _engine
    if _engine is None:
        url = settings.database_url
        if url.startswith("sqlite"):
            _engine = create_engine(
                url,
                echo=settings.debug,
                connect_args={"check_same_thread": False},
            )
        else:
            _engine = create_engine(
                url,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_recycle=300,
                pool_pre_ping=True,  # Test connection before using (auto-reconnect)
                echo=settings.debug,
            )
    return _engine


def get_session_factory():
    """Get or create session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine()
        )
    return _SessionLocal


def get_db() -> Session:
    """Get database session (dependency injection)."""
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_schema():
    """Initialize database schema (create tables if not exist)."""
    Base.metadata.create_all(bind=get_engine())


def drop_schema():
    """Drop all tables (use with caution)."""
    Base.metadata.drop_all(bind=get_engine())
