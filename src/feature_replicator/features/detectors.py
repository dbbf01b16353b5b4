"""Feature detection per source language.

Detectors look for structural signals only: class-name suffixes, directory
conventions and annotation/decorator text. Each returns a flat list of
FeatureCandidate records in a deterministic order.
"""
from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath

from ..scanner.walker import read_source
from .models import FeatureCandidate, FileRef

logger = logging.getLogger(__name__)


class _SourceCache:
    """Reads each file at most once per detection call."""

    def __init__(self, max_chars: int | None = None) -> None:
        self.max_chars = max_chars
        self._contents: dict[str, str | None] = {}

    def get(self, file: FileRef) -> str | None:
        if file.relative_path not in self._contents:
            self._contents[file.relative_path] = read_source(file.full_path, self.max_chars)
        return self._contents[file.relative_path]


class _CandidateSet:
    """Accumulates candidates with consistent de-duplication.

    * ids are unique within one call; a clashing slug for different files
      gets a numeric suffix, an exact repeat is dropped
    * a file-level candidate is skipped when an earlier candidate in the
      same scope already lists its file
    """

    def __init__(self) -> None:
        self.features: list[FeatureCandidate] = []
        self._by_id: dict[str, FeatureCandidate] = {}
        self._claimed: dict[str, set[str]] = {}

    def is_claimed(self, relative_path: str, scope: str = "default") -> bool:
        return relative_path in self._claimed.get(scope, set())

    def add(self, candidate: FeatureCandidate, scope: str = "default", file_level: bool = True) -> bool:
        if file_level and any(self.is_claimed(f, scope) for f in candidate.files):
            return False

        existing = self._by_id.get(candidate.id)
        if existing is not None:
            if existing.files == candidate.files:
                return False
            suffix = 2
            while f"{candidate.id}-{suffix}" in self._by_id:
                suffix += 1
            candidate.id = f"{candidate.id}-{suffix}"

        self.features.append(candidate)
        self._by_id[candidate.id] = candidate
        self._claimed.setdefault(scope, set()).update(candidate.files)
        return True


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _stem(file: FileRef) -> str:
    """File name without its final extension."""
    return PurePosixPath(file.relative_path).stem


def _dir_parts(file: FileRef) -> list[str]:
    return [part.lower() for part in PurePosixPath(file.relative_path).parts[:-1]]


def split_camel_case(name: str) -> str:
    """'OrderHistory' -> 'Order History'."""
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", " ", name).strip()


# =============================================================================
# C#
# =============================================================================

_CS_CONTROLLER_CLASS = re.compile(r"\bclass\s+(\w+Controller)\b")
_CS_ACTION = re.compile(
    r"\bpublic\s+(?:async\s+)?(?:virtual\s+|override\s+)?(?:Task<)?"
    r"(?:ActionResult|IActionResult|JsonResult|ViewResult|PartialViewResult|ContentResult|FileResult|RedirectResult)"
    r"(?:<[^>\n]*>)?>?\s+(\w+)\s*\("
)
_CS_WEB_METHOD = re.compile(
    r"\[(?:WebMethod|OperationContract)\b[^\]]*\]\s*public\s+(?:static\s+)?[\w<>\[\],.\s]+?\s+(\w+)\s*\("
)


def detect_csharp_features(files: list[FileRef], max_chars: int | None = None) -> list[FeatureCandidate]:
    """Detect ASP.NET controllers and legacy ASMX/WCF services.

    Each controller becomes ``LEGACY-F-NNN`` with its matching
    ``<Name>Service`` and ``<Name>Repository`` files attached.
    """
    sources = _SourceCache(max_chars)
    candidates = _CandidateSet()
    cs_files = [f for f in files if f.relative_path.lower().endswith(".cs")]
    by_stem = {_stem(f): f for f in reversed(cs_files)}
    index = 1

    for file in cs_files:
        in_controllers_dir = "controllers" in _dir_parts(file)
        if "Controller" not in PurePosixPath(file.relative_path).name and not in_controllers_dir:
            continue

        content = sources.get(file)
        if content is None:
            continue

        class_match = _CS_CONTROLLER_CLASS.search(content)
        if not class_match:
            continue

        controller = class_match.group(1)
        base_name = controller.removesuffix("Controller")
        actions = _CS_ACTION.findall(content)

        related = [file.relative_path]
        for suffix in ("Service", "Repository"):
            match = by_stem.get(f"{base_name}{suffix}")
            if match and match.relative_path not in related:
                related.append(match.relative_path)

        description = f"Controller with {len(actions)} actions detected"
        if actions:
            description += ": " + ", ".join(actions[:3])

        added = candidates.add(FeatureCandidate(
            id=f"LEGACY-F-{index:03d}",
            type="endpoint",
            language="csharp",
            files=related,
            description=description,
            name=split_camel_case(base_name),
            metadata={
                "controller": controller,
                "actions": actions[:10],
                "framework": "aspnet-mvc",
            },
        ))
        if added:
            index += 1

    for file in cs_files:
        lowered = file.relative_path.lower()
        if not lowered.endswith((".asmx.cs", ".svc.cs")):
            continue

        content = sources.get(file)
        if content is None:
            continue

        service_name = PurePosixPath(file.relative_path).name.split(".")[0]
        methods = _CS_WEB_METHOD.findall(content)
        added = candidates.add(FeatureCandidate(
            id=f"LEGACY-F-{index:03d}",
            type="endpoint",
            language="csharp",
            files=[file.relative_path],
            description=f"Web service with {len(methods)} web methods",
            name=split_camel_case(service_name),
            metadata={
                "service": service_name,
                "methods": methods[:10],
                "framework": "wcf" if lowered.endswith(".svc.cs") else "asmx",
            },
        ))
        if added:
            index += 1

    logger.info(f"Detected {len(candidates.features)} C# features")
    return candidates.features


# =============================================================================
# Java
# =============================================================================

_JAVA_CONTROLLER = re.compile(r"^\s*@(?:Rest)?Controller\b", re.MULTILINE)
_JAVA_SERVICE = re.compile(r"^\s*@Service\b", re.MULTILINE)
_JAVA_REPOSITORY = re.compile(
    r"^\s*@Repository\b|\bextends\s+(?:JpaRepository|CrudRepository|PagingAndSortingRepository)\b",
    re.MULTILINE,
)


def detect_java_features(files: list[FileRef], max_chars: int | None = None) -> list[FeatureCandidate]:
    """Detect Spring controllers, services and repositories."""
    sources = _SourceCache(max_chars)
    candidates = _CandidateSet()
    java_files = [f for f in files if f.relative_path.endswith(".java")]

    passes = [
        (_JAVA_CONTROLLER, "controller", "endpoint", "Java Controller"),
        (_JAVA_SERVICE, "service", "business_logic", "Java Service"),
        (_JAVA_REPOSITORY, "repository", "data_access", "Java Repository"),
    ]
    for pattern, kind, feature_type, label in passes:
        for file in java_files:
            if candidates.is_claimed(file.relative_path):
                continue
            content = sources.get(file)
            if content is None or not pattern.search(content):
                continue

            class_name = _stem(file)
            candidates.add(FeatureCandidate(
                id=f"java-{kind}-{_slug(class_name)}",
                type=feature_type,
                language="java",
                files=[file.relative_path],
                description=f"{label}: {class_name}",
                name=class_name,
            ))

    logger.info(f"Detected {len(candidates.features)} Java features")
    return candidates.features


# =============================================================================
# PHP
# =============================================================================

LEGACY_PHP_DIRS = frozenset({
    "includes",
    "include",
    "inc",
    "lib",
    "libs",
    "classes",
    "class",
    "functions",
    "funciones",
    "modules",
    "legacy",
    "common",
})

_PHP_CONTROLLER_CLASS = re.compile(r"\bclass\s+\w+Controller\b")
_PHP_MODEL = re.compile(r"\bextends\s+Model\b|\buse\s+HasFactory\b")
_PHP_SQL_API = re.compile(
    r"\b(?:mysql_query|mysql_connect|mysqli_\w+|pg_query|pg_connect|odbc_exec|sqlsrv_query|mssql_query|oci_parse)\s*\("
    r"|\bnew\s+(?:PDO|mysqli)\b"
    r"|->(?:prepare|query|exec)\s*\(",
    re.IGNORECASE,
)
_PHP_CLASS = re.compile(r"^\s*(?:abstract\s+|final\s+)?class\s+(\w+)", re.MULTILINE | re.IGNORECASE)
_PHP_FUNCTION = re.compile(r"\bfunction\s+(\w+)\s*\(", re.IGNORECASE)
_PHP_REQUEST_PARAM = re.compile(r"\$_(?:GET|POST|REQUEST)\s*\[\s*['\"]([^'\"]+)['\"]\s*\]")
_PHP_REQUEST_READ = re.compile(r"\$_(?:GET|POST|REQUEST)\b")


def detect_php_features(files: list[FileRef], max_chars: int | None = None) -> list[FeatureCandidate]:
    """Detect PHP features along a modern and a legacy path.

    The modern path follows framework naming (controllers, Eloquent models,
    services). The legacy path classifies files under include/library
    directories by content and picks up procedural page scripts. The paths
    keep separate claim sets, so a file may appear in both.
    """
    sources = _SourceCache(max_chars)
    candidates = _CandidateSet()

    _detect_php_modern(files, sources, candidates)
    _detect_php_legacy(files, sources, candidates)

    logger.info(f"Detected {len(candidates.features)} PHP features")
    return candidates.features


def _detect_php_modern(files: list[FileRef], sources: _SourceCache, candidates: _CandidateSet) -> None:
    for file in files:
        file_name = PurePosixPath(file.relative_path).name
        if "Controller" not in file_name and "Controllers/" not in file.relative_path:
            continue
        content = sources.get(file)
        if content is None or not _PHP_CONTROLLER_CLASS.search(content):
            continue
        class_name = _stem(file)
        candidates.add(FeatureCandidate(
            id=f"php-controller-{_slug(class_name)}",
            type="endpoint",
            language="php",
            files=[file.relative_path],
            description=f"PHP Controller: {class_name}",
            name=class_name.removesuffix("Controller") or class_name,
        ))

    for file in files:
        if "Models/" not in file.relative_path and "app/" not in file.relative_path:
            continue
        if candidates.is_claimed(file.relative_path):
            continue
        content = sources.get(file)
        if content is None or not _PHP_MODEL.search(content):
            continue
        class_name = _stem(file)
        candidates.add(FeatureCandidate(
            id=f"php-model-{_slug(class_name)}",
            type="data_access",
            language="php",
            files=[file.relative_path],
            description=f"PHP Model: {class_name}",
            name=class_name,
        ))

    for file in files:
        if "Services/" not in file.relative_path and "Service" not in PurePosixPath(file.relative_path).name:
            continue
        class_name = _stem(file)
        candidates.add(FeatureCandidate(
            id=f"php-service-{_slug(class_name)}",
            type="business_logic",
            language="php",
            files=[file.relative_path],
            description=f"PHP Service: {class_name}",
            name=class_name,
        ))


def _detect_php_legacy(files: list[FileRef], sources: _SourceCache, candidates: _CandidateSet) -> None:
    scope = "legacy"

    for file in files:
        legacy_dirs = [part for part in _dir_parts(file) if part in LEGACY_PHP_DIRS]
        if not legacy_dirs:
            continue
        content = sources.get(file)
        if content is None:
            continue

        name = _stem(file)
        functions = _PHP_FUNCTION.findall(content)
        class_match = _PHP_CLASS.search(content)

        if _PHP_SQL_API.search(content):
            kind, feature_type, label = "dataaccess", "data_access", "Legacy PHP data access"
        elif class_match:
            kind, feature_type, label = "class", "business_logic", "Legacy PHP class"
        elif functions:
            kind, feature_type, label = "utility", "utility", "Legacy PHP functions"
        else:
            continue

        metadata = {"legacy_dir": legacy_dirs[-1]}
        if class_match:
            metadata["class"] = class_match.group(1)
        if functions:
            metadata["functions"] = functions[:10]

        candidates.add(FeatureCandidate(
            id=f"php-legacy-{kind}-{_slug(name)}",
            type=feature_type,
            language="php",
            files=[file.relative_path],
            description=f"{label}: {name}",
            name=name,
            metadata=metadata,
        ), scope=scope)

    for file in files:
        if any(part in LEGACY_PHP_DIRS for part in _dir_parts(file)):
            continue
        if candidates.is_claimed(file.relative_path, scope):
            continue
        content = sources.get(file)
        if content is None or not _PHP_REQUEST_READ.search(content) or _PHP_CLASS.search(content):
            continue

        name = _stem(file)
        params = list(dict.fromkeys(_PHP_REQUEST_PARAM.findall(content)))
        candidates.add(FeatureCandidate(
            id=f"php-legacy-page-{_slug(name)}",
            type="endpoint",
            language="php",
            files=[file.relative_path],
            description=f"Legacy PHP page: {name}",
            name=name.replace("_", " ").strip(),
            metadata={"request_params": params[:10]} if params else None,
        ), scope=scope)


# =============================================================================
# Python
# =============================================================================

_PY_FUNCTION = re.compile(r"^(?:async\s+)?def\s+(\w+)\s*\(", re.MULTILINE)
_PY_CLASS = re.compile(r"^class\s+(\w+)\s*(?:\(([^)]*)\))?\s*:", re.MULTILINE)
_PY_ROUTE = re.compile(r"^\s*@\w+\.(?:get|post|put|delete|patch|route)\s*\(", re.MULTILINE)


def detect_python_features(files: list[FileRef], max_chars: int | None = None) -> list[FeatureCandidate]:
    """Detect Django views/models and Flask/FastAPI route modules."""
    sources = _SourceCache(max_chars)
    candidates = _CandidateSet()
    py_files = [f for f in files if f.relative_path.endswith(".py")]

    for file in py_files:
        if PurePosixPath(file.relative_path).name != "views.py" and "views" not in _dir_parts(file):
            continue
        content = sources.get(file)
        if content is None:
            continue

        views = [name for name in _PY_FUNCTION.findall(content) if not name.startswith("_")]
        views += [
            name for name, bases in _PY_CLASS.findall(content)
            if "View" in (bases or "") or name.endswith("View")
        ]
        for view in views:
            candidates.add(FeatureCandidate(
                id=f"python-view-{_slug(view)}",
                type="endpoint",
                language="python",
                files=[file.relative_path],
                description=f"Python View: {view}",
                name=view,
            ), file_level=False)

    for file in py_files:
        if PurePosixPath(file.relative_path).name != "models.py" and "models" not in _dir_parts(file):
            continue
        content = sources.get(file)
        if content is None:
            continue

        for class_name, _bases in _PY_CLASS.findall(content):
            if class_name == "Meta":
                continue
            candidates.add(FeatureCandidate(
                id=f"python-model-{_slug(class_name)}",
                type="data_access",
                language="python",
                files=[file.relative_path],
                description=f"Python Model: {class_name}",
                name=class_name,
            ), file_level=False)

    for file in py_files:
        if candidates.is_claimed(file.relative_path):
            continue
        content = sources.get(file)
        if content is None or not _PY_ROUTE.search(content):
            continue

        module = _stem(file)
        candidates.add(FeatureCandidate(
            id=f"python-api-{_slug(module)}",
            type="endpoint",
            language="python",
            files=[file.relative_path],
            description=f"Python API: {module}",
            name=module,
        ))

    logger.info(f"Detected {len(candidates.features)} Python features")
    return candidates.features


# =============================================================================
# JavaScript / TypeScript
# =============================================================================

JS_SUFFIXES = (".js", ".jsx", ".mjs", ".cjs")
TS_SUFFIXES = (".ts", ".tsx")

_JS_ROUTE = re.compile(r"\b(?:app|router|server|api)\.(?:get|post|put|delete|patch|use|all)\s*\(")
_JS_CONTROLLER = re.compile(r"\bclass\s+\w+Controller\b|\bexport\b[^\n]*Controller|@Controller\s*\(")
_JS_MODEL = re.compile(
    r"\bsequelize\.define\s*\(|\bnew\s+(?:mongoose\.)?Schema\s*\(|@Entity\s*\(|\bModel\.init\s*\(|\bmongoose\.model\s*\("
)


def _js_language(file: FileRef) -> str:
    return "typescript" if file.relative_path.lower().endswith(TS_SUFFIXES) else "javascript"


def detect_javascript_features(files: list[FileRef], max_chars: int | None = None) -> list[FeatureCandidate]:
    """Detect Express routes, controllers, services and ORM models."""
    sources = _SourceCache(max_chars)
    candidates = _CandidateSet()
    js_files = [f for f in files if f.relative_path.lower().endswith(JS_SUFFIXES + TS_SUFFIXES)]

    def add(file: FileRef, kind: str, feature_type: str, label: str) -> None:
        base_name = _stem(file)
        candidates.add(FeatureCandidate(
            id=f"js-{kind}-{_slug(base_name)}",
            type=feature_type,
            language=_js_language(file),
            files=[file.relative_path],
            description=f"{label}: {base_name}",
            name=base_name,
        ))

    for file in js_files:
        content = sources.get(file)
        if content is not None and _JS_ROUTE.search(content):
            add(file, "route", "endpoint", "Express Route")

    for file in js_files:
        if "controller" not in file.relative_path.lower() or candidates.is_claimed(file.relative_path):
            continue
        content = sources.get(file)
        if content is not None and _JS_CONTROLLER.search(content):
            add(file, "controller", "endpoint", "Controller")

    for file in js_files:
        if "service" in file.relative_path.lower():
            add(file, "service", "business_logic", "Service")

    for file in js_files:
        if "model" not in file.relative_path.lower() or candidates.is_claimed(file.relative_path):
            continue
        content = sources.get(file)
        if content is not None and _JS_MODEL.search(content):
            add(file, "model", "data_access", "Model")

    logger.info(f"Detected {len(candidates.features)} JavaScript/TypeScript features")
    return candidates.features
