from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple


class ViewId(str, Enum):
    FORM = "form"
    RESULTS = "results"
    COLLAPSED = "collapsed"
    ISSUE_DETAILS = "issue-details"
    OUT_OF_SCOPE_MODAL = "out-of-scope-modal"


class Animation(str, Enum):
    SLIDE = "slide"
    FADE = "fade"
    RESIZE = "resize"


class SourceKind(str, Enum):
    LOCAL = "local"
    LIBRARY = "library"


class IssueCategory(str, Enum):
    SPACING = "spacing"
    CORNER_RADIUS = "corner-radius"
    FONT_SIZE = "font-size"
    FONT_COLOR = "font-color"
    TEXT_STYLE = "text-style"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


DEFAULT_VALIDATION_OPTIONS: FrozenSet[str] = frozenset({"spacings"})


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class CollectionRef:
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollectionRef":
        return cls(id=str(data["id"]), name=str(data.get("name") or data["id"]))


@dataclass(frozen=True)
class DesignSystemInfo:
    """Immutable description of an attached design system; replaced wholesale on re-attach."""

    id: str
    name: str
    source_kind: SourceKind = SourceKind.LIBRARY
    collections: Tuple[CollectionRef, ...] = ()
    key: Optional[str] = None
    library_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "sourceKind": self.source_kind.value,
            "collections": [ref.to_dict() for ref in self.collections],
        }
        if self.key is not None:
            data["key"] = self.key
        if self.library_name is not None:
            data["libraryName"] = self.library_name
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DesignSystemInfo":
        raw_kind = str(data.get("sourceKind") or data.get("source") or SourceKind.LIBRARY.value).lower()
        try:
            source_kind = SourceKind(raw_kind)
        except ValueError:
            source_kind = SourceKind.LIBRARY
        collections = data.get("collections") or []
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            source_kind=source_kind,
            collections=tuple(CollectionRef.from_dict(item) for item in collections if isinstance(item, dict)),
            key=data.get("key"),
            library_name=data.get("libraryName"),
        )


@dataclass(frozen=True)
class ValidationIssue:
    node_id: str
    node_name: str
    category: IssueCategory
    severity: Severity
    message: str
    suggestion: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "nodeName": self.node_name,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "suggestion": self.suggestion,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationIssue":
        node_id = data.get("nodeId")
        if not isinstance(node_id, str) or not node_id:
            raise ValueError("issue is missing nodeId")
        return cls(
            node_id=node_id,
            node_name=str(data.get("nodeName") or ""),
            category=IssueCategory(data.get("category") or data.get("type")),
            severity=Severity(data.get("severity") or Severity.WARNING.value),
            message=str(data.get("message") or data.get("issue") or ""),
            suggestion=str(data.get("suggestion") or ""),
        )


@dataclass(frozen=True)
class ResultsData:
    """Output of one validation run. Never mutated; superseded by the next run."""

    issues: Tuple[ValidationIssue, ...]
    total_nodes_scanned: int
    scope: str
    generated_at: datetime
    run_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issues": [issue.to_dict() for issue in self.issues],
            "totalNodes": self.total_nodes_scanned,
            "scope": self.scope,
            "generatedAt": self.generated_at.isoformat(),
            "runId": self.run_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResultsData":
        return cls(
            issues=tuple(ValidationIssue.from_dict(item) for item in data.get("issues") or []),
            total_nodes_scanned=int(data.get("totalNodes") or 0),
            scope=str(data.get("scope") or ""),
            generated_at=_parse_timestamp(data.get("generatedAt") or data.get("timestamp")),
            run_id=str(data.get("runId") or ""),
        )


@dataclass(frozen=True)
class FormData:
    selected_design_system_id: Optional[str] = None
    attached_system_info: Optional[DesignSystemInfo] = None
    validation_options: FrozenSet[str] = DEFAULT_VALIDATION_OPTIONS

    def is_consistent(self) -> bool:
        if (self.selected_design_system_id is None) != (self.attached_system_info is None):
            return False
        if self.attached_system_info is not None:
            return self.attached_system_info.id == self.selected_design_system_id
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selectedLibraryId": self.selected_design_system_id,
            "designSystemInfo": self.attached_system_info.to_dict() if self.attached_system_info else None,
            "validationOptions": sorted(self.validation_options),
        }


@dataclass(frozen=True)
class HistoryEntry:
    view: ViewId
    params: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class AppState:
    """Read-only snapshot handed to subscribers and callers of ``get_state``."""

    current_view: ViewId
    previous_view: Optional[ViewId]
    view_params: Optional[Dict[str, Any]]
    form_data: FormData
    results_data: Optional[ResultsData]
    history: Tuple[HistoryEntry, ...] = ()


@dataclass
class TransitionOptions:
    animation: Optional[Animation] = None
    duration_ms: Optional[int] = None
    preserve_data: bool = True
    data: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class Transition:
    from_view: ViewId
    to_view: ViewId
    animation: Animation
    duration_ms: int
    preserve_data: bool = True


def normalize_options(options: Optional[Iterable[str]]) -> FrozenSet[str]:
    if options is None:
        return frozenset()
    if isinstance(options, str):
        return frozenset({options})
    return frozenset(str(opt) for opt in options if str(opt).strip())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
