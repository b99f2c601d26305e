"""Data records shared by the key resolution engine and the locale store."""
from dataclasses import dataclass, field, asdict
from typing import Any, ClassVar, Dict, List, Optional


@dataclass(frozen=True)
class SourceLocation:
    """Where a piece of text was found in the scanned project."""
    file_path: str
    line_number: int
    column_number: int


@dataclass(frozen=True)
class TextMatch:
    """A snippet of translatable text produced by the extraction step."""
    text: str
    file_path: str = ''
    line_number: int = 0
    column_number: int = 0
    context: Optional[str] = None
    parent_element: Optional[str] = None

    @property
    def source_location(self) -> SourceLocation:
        return SourceLocation(self.file_path, self.line_number, self.column_number)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TextMatch':
        """
        Build a TextMatch from the extractor's JSON form.

        Both the camelCase wire names (``filePath``, ``lineNumber``) and the
        snake_case attribute names are accepted.

        Args:
            data: A single match as decoded from JSON.

        Returns:
            TextMatch: The match record.
        """
        if 'text' not in data:
            raise ValueError("Text match is missing the 'text' field")
        return cls(
            text=data['text'],
            file_path=data.get('filePath', data.get('file_path', '')),
            line_number=int(data.get('lineNumber', data.get('line_number', 0)) or 0),
            column_number=int(data.get('columnNumber', data.get('column_number', 0)) or 0),
            context=data.get('context'),
            parent_element=data.get('parentElement', data.get('parent_element')),
        )


@dataclass
class GeneratedKey:
    """A resolved translation key handed to the source transformation step."""
    key: str
    original_text: str
    confidence: float
    suggestions: List[str] = field(default_factory=list)
    file_path: Optional[str] = None
    line_number: Optional[int] = None
    column_number: Optional[int] = None
    context: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase form consumed by the transformer."""
        payload: Dict[str, Any] = {
            'key': self.key,
            'originalText': self.original_text,
            'confidence': self.confidence,
            'suggestions': list(self.suggestions),
        }
        optional_fields = {
            'filePath': self.file_path,
            'lineNumber': self.line_number,
            'columnNumber': self.column_number,
            'context': self.context,
        }
        payload.update({name: value for name, value in optional_fields.items() if value is not None})
        return payload


@dataclass
class EntryMetadata:
    added_date: str
    source_file: str
    confidence: float


@dataclass
class TranslationEntry:
    """One row of one locale's store."""
    key: str
    value: str
    locale: str
    metadata: Optional[EntryMetadata] = None


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class DuplicateCheckResult:
    """Outcome of a key or value duplicate query. Never persisted."""
    is_duplicate: bool
    existing_key: Optional[str] = None
    similar_keys: List[str] = field(default_factory=list)


@dataclass
class DuplicateValue:
    """A group of two or more keys sharing one normalized value."""
    value: str
    keys: List[str]
    locales: List[str] = field(default_factory=list)


@dataclass
class DuplicateValueReport:
    total_duplicates: int = 0
    duplicates_by_locale: Dict[str, List[DuplicateValue]] = field(default_factory=dict)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class ConsolidationSuggestion:
    value: str
    keys: List[str]
    suggested_key: str
    confidence: float


@dataclass
class BackupInfo:
    """Manifest of one snapshot of the locale directory."""
    id: str
    timestamp: str
    files: List[str]
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BackupInfo':
        return cls(
            id=data['id'],
            timestamp=data['timestamp'],
            files=list(data.get('files', [])),
            description=data.get('description', ''),
        )


@dataclass
class ResolutionResult:
    generated_key: GeneratedKey
    validation: ValidationResult
    duplicate_check: DuplicateCheckResult
    final_key: str


@dataclass
class BatchFailure:
    """A batch item that fell back to an unvalidated key."""
    text: str
    file_path: Optional[str]
    error: str


# --- Consolidation decisions ---
# Exactly three cases, each carrying only the fields it needs.

@dataclass(frozen=True)
class Consolidate:
    """Keep ``target_key`` mapped to the value and delete the other keys."""
    target_key: str
    action: ClassVar[str] = 'consolidate'


@dataclass(frozen=True)
class Rename:
    """Introduce ``new_key`` for the value and delete every old key."""
    new_key: str
    action: ClassVar[str] = 'rename'


@dataclass(frozen=True)
class KeepSeparate:
    """Leave the duplicate group untouched."""
    action: ClassVar[str] = 'keep_separate'


def decision_from_dict(data: Dict[str, Any]):
    """
    Build a consolidation decision from its dictionary form.

    Args:
        data: ``{"action": "consolidate", "targetKey": ...}``,
            ``{"action": "rename", "newKey": ...}`` or
            ``{"action": "keep_separate"}``. snake_case field names are
            accepted as well.

    Returns:
        Consolidate | Rename | KeepSeparate: The decision.

    Raises:
        ValueError: If the action is unknown or its required field is missing.
    """
    action = data.get('action')
    if action == Consolidate.action:
        target_key = data.get('targetKey') or data.get('target_key')
        if not target_key:
            raise ValueError("A 'consolidate' decision requires a target key")
        return Consolidate(target_key=target_key)
    if action == Rename.action:
        new_key = data.get('newKey') or data.get('new_key')
        if not new_key:
            raise ValueError("A 'rename' decision requires a new key")
        return Rename(new_key=new_key)
    if action == KeepSeparate.action:
        return KeepSeparate()
    raise ValueError(f"Unknown consolidation action: {action!r}")
