"""
WebAnno - collaborative linguistic annotation of text documents.

This package provides the annotation web application:
- Projects with annotation layers, features, guidelines and permissions
- Source document upload and per-user annotation documents
- Annotation workspace (open, page through, annotate, finish documents)
- Monitoring of annotation progress
- Export of annotation results
"""

__version__ = "1.0.0"
