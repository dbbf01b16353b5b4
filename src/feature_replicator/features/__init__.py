"""Feature detection and analysis."""
from .models import (
    FileRef,
    SourceFile,
    DatabaseRef,
    TechStack,
    FeatureCandidate,
    QueryInfo,
    DataSource,
    FileSystemTouch,
    ExternalServiceCall,
    FeatureSpec,
)

__all__ = [
    "FileRef",
    "SourceFile",
    "DatabaseRef",
    "TechStack",
    "FeatureCandidate",
    "QueryInfo",
    "DataSource",
    "FileSystemTouch",
    "ExternalServiceCall",
    "FeatureSpec",
]
