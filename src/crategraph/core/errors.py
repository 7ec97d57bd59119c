"""Errors raised while turning cargo metadata into a dependency tree."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any


def to_string_pretty(value: Any) -> str:
    """Render a JSON node for error messages."""
    return json.dumps(value, indent=2, default=str)


class ErrorKind(str, Enum):
    """What went wrong, so callers can branch without parsing messages."""

    SCHEMA_VIOLATION = "schema_violation"
    UNPARSABLE_IDENTIFIER = "unparsable_identifier"
    UNRESOLVED_REFERENCE = "unresolved_reference"
    INVALID_SOURCE_DIRECTORY = "invalid_source_directory"
    DOWNSTREAM_CONSTRUCTION_FAILURE = "downstream_construction_failure"
    METADATA_UNAVAILABLE = "metadata_unavailable"


class DepTreeError(Exception):
    """Base class for every failure of a dependency tree construction."""

    kind: ErrorKind


class SchemaViolationError(DepTreeError):
    """A required field is missing or has the wrong JSON type."""

    kind = ErrorKind.SCHEMA_VIOLATION

    def __init__(self, field: str, expected: str, node: Any) -> None:
        self.field = field
        self.expected = expected
        self.node = node
        super().__init__(
            f"Couldn't find {expected} entry '{field}' in:\n{to_string_pretty(node)}"
        )


class UnparsableIdentifierError(DepTreeError):
    """A package id string matches neither package id grammar."""

    kind = ErrorKind.UNPARSABLE_IDENTIFIER

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Couldn't parse package id '{identifier}'")


class UnresolvedReferenceError(DepTreeError):
    """A member, resolve node or dependency names no resolved package."""

    kind = ErrorKind.UNRESOLVED_REFERENCE

    def __init__(self, reference: Any, role: str) -> None:
        self.reference = reference
        self.role = role
        super().__init__(f"Couldn't find package for {role} {reference}")


class InvalidSourceDirectoryError(DepTreeError):
    """The primary source directory of a package is not a directory."""

    kind = ErrorKind.INVALID_SOURCE_DIRECTORY

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Invalid source path directory '{path}'")


class SourceConstructionError(DepTreeError):
    """Config.new_source rejected a node."""

    kind = ErrorKind.DOWNSTREAM_CONSTRUCTION_FAILURE

    def __init__(self, identity: Any, reason: str) -> None:
        self.identity = identity
        self.reason = reason
        super().__init__(f"Couldn't create source for {identity}: {reason}")


class MetadataError(DepTreeError):
    """The metadata snapshot could not be obtained or decoded."""

    kind = ErrorKind.METADATA_UNAVAILABLE
