"""Data model for feature detection and analysis results.

Every record is a plain dataclass; ``to_dict`` produces the JSON shape
returned by the MCP tools.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class FileRef:
    """A file found by the repository walker."""
    full_path: Path
    relative_path: str  # Always relative to the scan root, "/"-separated


@dataclass(frozen=True)
class SourceFile:
    """Contents of one readable entry file."""
    relative_path: str
    content: str


@dataclass
class DatabaseRef:
    """One database named in a tech stack."""
    engine: str
    name: str = ""


@dataclass
class TechStack:
    """Language, framework and databases of the repository being scanned."""
    language: str = ""
    framework: str = ""
    databases: list[DatabaseRef] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TechStack:
        """Build from a descriptor dict.

        ``databases`` entries may be ``{"engine": ..., "name": ...}`` objects
        or bare engine strings.
        """
        if not data:
            return cls()

        databases = []
        for db in data.get("databases") or []:
            if isinstance(db, str):
                databases.append(DatabaseRef(engine=db))
            elif isinstance(db, dict) and db.get("engine"):
                databases.append(DatabaseRef(engine=str(db["engine"]), name=str(db.get("name") or "")))

        return cls(
            language=str(data.get("language") or ""),
            framework=str(data.get("framework") or ""),
            databases=databases,
        )

    def primary_database(self) -> DatabaseRef | None:
        return self.databases[0] if self.databases else None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class FeatureCandidate:
    """A unit of functionality found by a feature detector."""
    id: str
    type: str  # endpoint, business_logic, data_access, utility
    language: str
    files: list[str]
    description: str
    name: str = ""
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {
            "id": self.id,
            "type": self.type,
            "language": self.language,
            "files": list(self.files),
            "description": self.description,
        }
        if self.name:
            result["name"] = self.name
        if self.metadata:
            result["metadata"] = dict(self.metadata)
        return result


@dataclass
class QueryInfo:
    """Heuristic breakdown of one SQL statement."""
    type: str = "unknown"  # SELECT, INSERT, UPDATE, DELETE, STORED_PROC, unknown
    tables: list[str] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    filters: str = ""
    joins: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DataSource:
    """One (query, table) pairing."""
    engine: str
    database: str
    schema: str
    table: str
    columns: list[str]
    filters: str = ""
    joins: str = ""
    source_code_snippet: str = ""
    role: str | None = None
    kind: str = "database"

    def to_dict(self) -> dict[str, Any]:
        result = {
            "kind": self.kind,
            "engine": self.engine,
            "database": self.database,
            "schema": self.schema,
            "table": self.table,
        }
        if self.role:
            result["role"] = self.role
        result.update({
            "columns": list(self.columns),
            "filters": self.filters,
            "joins": self.joins,
            "source_code_snippet": self.source_code_snippet,
        })
        return result


@dataclass(frozen=True)
class FileSystemTouch:
    """A literal filesystem path referenced by the code."""
    kind: str  # local, network_share
    path_pattern: str
    operation: str  # read, write, unknown

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExternalServiceCall:
    """An outbound HTTP URL referenced by the code."""
    url_or_host: str
    method: str = "unknown"
    kind: str = "api_call"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "url_or_host": self.url_or_host, "method": self.method}


@dataclass
class FeatureSpec:
    """Specification assembled for one feature by ``scan_feature``.

    ``inputs`` is a list of ``{name, type, description}`` records for most
    languages; the PHP path replaces it with
    ``{http_params, form_fields, other_sources}``.
    """
    feature_id: str
    name: str
    domain_purpose: str
    tech_stack: TechStack
    inputs: list[dict[str, Any]] | dict[str, Any] = field(default_factory=list)
    outputs: list[dict[str, Any]] = field(default_factory=list)
    data_sources: list[DataSource] = field(default_factory=list)
    file_system: list[FileSystemTouch] = field(default_factory=list)
    external_services: list[ExternalServiceCall] = field(default_factory=list)
    business_rules: list[str] = field(default_factory=list)
    files_involved: list[str] = field(default_factory=list)

    # PHP enrichment
    business_context: dict[str, Any] | None = None
    process_flow: list[str] | None = None
    catalog_structure: dict[str, Any] | None = None
    example_scenarios: list[str] | None = None
    code_analysis: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "feature_id": self.feature_id,
            "name": self.name,
            "domain_purpose": self.domain_purpose,
            "inputs": self.inputs,
            "outputs": self.outputs,
            "data_sources": [ds.to_dict() for ds in self.data_sources],
            "file_system": [fs.to_dict() for fs in self.file_system],
            "external_services": [svc.to_dict() for svc in self.external_services],
            "business_rules": list(self.business_rules),
            "files_involved": list(self.files_involved),
            "tech_stack": self.tech_stack.to_dict(),
        }

        optional = {
            "business_context": self.business_context,
            "process_flow": self.process_flow,
            "catalog_structure": self.catalog_structure,
            "example_scenarios": self.example_scenarios,
            "code_analysis": self.code_analysis,
        }
        for key, value in optional.items():
            if value is not None:
                result[key] = value

        return result
