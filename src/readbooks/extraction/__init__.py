"""Artifact extraction from decoded container trees."""

from .models import Artifact, ArtifactFound, ArtifactKind, ContainerKind, RawArtifactFields
from .schema import SchemaGeneration, resolve_artifact, resolve_container
from .walker import DEFAULT_MAX_DEPTH, ContainerWalker
from .warnings import CollectingWarningSink, LoggingWarningSink, Severity, WarningSink

__all__ = [
    "Artifact",
    "ArtifactFound",
    "ArtifactKind",
    "CollectingWarningSink",
    "ContainerKind",
    "ContainerWalker",
    "DEFAULT_MAX_DEPTH",
    "LoggingWarningSink",
    "RawArtifactFields",
    "SchemaGeneration",
    "Severity",
    "WarningSink",
    "resolve_artifact",
    "resolve_container",
]
