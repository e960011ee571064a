"""Core data types for context optimization."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .exceptions import ValidationError


class Role(str, Enum):
    """Speaker of a message."""
    USER = "user"
    MODEL = "model"
    SYSTEM = "system"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        if isinstance(value, Role):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key in ("assistant", "ai"):
                return cls.MODEL
            for role in cls:
                if role.value == key:
                    return role
        raise ValidationError(f"Unknown message role: {value!r}")


class Strategy(str, Enum):
    """How much of the history a query needs."""
    NORMAL = "normal"
    SPECIFIC_MESSAGES = "specific_messages"
    FULL_CONVERSATION = "full_conversation"


class DetailLevel(str, Enum):
    """Summarization aggressiveness."""
    CONCISE = "concise"
    DETAILED = "detailed"


class Method(str, Enum):
    """Which pipeline produced an OptimizationResult."""
    NONE = "none"
    COMPRESSION = "compression"
    HYBRID = "hybrid"
    SEMANTIC = "semantic-optimization"


# Year 5138 in seconds; larger numbers are taken as milliseconds
EPOCH_MS_CUTOFF = 1e11


def to_utc(value: Any) -> datetime:
    """
    Normalize a timestamp to an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), ISO-8601 strings
    and numeric epoch seconds. Numbers above EPOCH_MS_CUTOFF are epoch
    milliseconds, as JavaScript storage writes them.
    """
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, bool):
        raise ValidationError(f"Invalid timestamp: {value!r}")
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > EPOCH_MS_CUTOFF else value
        try:
            ts = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            raise ValidationError(f"Invalid timestamp: {value!r}") from None
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid timestamp: {value!r}") from None
    else:
        raise ValidationError(f"Invalid timestamp: {value!r}")

    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(frozen=True)
class FileRef:
    """Metadata for a file attached to a message."""
    name: str
    type: Optional[str] = None
    size: Optional[int] = None

    @classmethod
    def from_any(cls, value: Any) -> "FileRef":
        if isinstance(value, FileRef):
            return value
        if isinstance(value, Mapping):
            return cls(
                name=str(value.get("name", "")),
                type=value.get("type"),
                size=value.get("size"),
            )
        return cls(name=str(value))


@dataclass(frozen=True)
class Message:
    """A real chat message."""
    role: Role
    text: str
    timestamp: datetime
    files: Tuple[FileRef, ...] = ()
    is_compressed: bool = False
    is_summary: bool = False

    def __post_init__(self):
        object.__setattr__(self, "role", Role.parse(self.role))
        if not isinstance(self.text, str):
            raise ValidationError(f"Message text must be a string, got {type(self.text).__name__}")
        object.__setattr__(self, "timestamp", to_utc(self.timestamp))
        object.__setattr__(self, "files", tuple(FileRef.from_any(f) for f in (self.files or ())))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        """Build a Message from a storage-layer dict (camelCase or snake_case flags)."""
        missing = [k for k in ("role", "text", "timestamp") if data.get(k) is None]
        if missing:
            raise ValidationError(f"Message missing required field(s): {', '.join(missing)}")
        flags = data.get("flags") or {}
        return cls(
            role=data["role"],
            text=data["text"],
            timestamp=data["timestamp"],
            files=tuple(data.get("files") or ()),
            is_compressed=bool(flags.get("isCompressed", data.get("is_compressed", False))),
            is_summary=bool(flags.get("isSummary", data.get("is_summary", False))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "message",
            "role": self.role.value,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
            "files": [{"name": f.name, "type": f.type, "size": f.size} for f in self.files],
            "is_compressed": self.is_compressed,
            "is_summary": self.is_summary,
        }


@dataclass(frozen=True)
class CompressionMarker:
    """Stands in for messages elided by the compressor."""
    dropped_count: int
    timestamp: datetime

    role = Role.SYSTEM
    files = ()
    is_compressed = True
    is_summary = False

    @property
    def text(self) -> str:
        return f"[{self.dropped_count} messages compressed for context optimization]"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "compression_marker",
            "role": self.role.value,
            "dropped_count": self.dropped_count,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class SummaryMarker:
    """Replaces a slice of the conversation with an AI-written summary."""
    original_count: int
    text: str
    timestamp: datetime

    role = Role.SYSTEM
    files = ()
    is_compressed = False
    is_summary = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "summary_marker",
            "role": self.role.value,
            "original_count": self.original_count,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


Entry = Union[Message, CompressionMarker, SummaryMarker]
ENTRY_TYPES = (Message, CompressionMarker, SummaryMarker)


def coerce_messages(messages: Any) -> List[Entry]:
    """
    Validate caller input into a list of entries.

    Raises:
        ValidationError: if messages is not a list/tuple or an item is malformed
    """
    if not isinstance(messages, (list, tuple)):
        raise ValidationError(f"messages must be a list, got {type(messages).__name__}")

    entries: List[Entry] = []
    for i, item in enumerate(messages):
        if isinstance(item, ENTRY_TYPES):
            entries.append(item)
        elif isinstance(item, Mapping):
            try:
                entries.append(Message.from_dict(item))
            except ValidationError as e:
                raise ValidationError(f"messages[{i}]: {e}") from None
        else:
            raise ValidationError(f"messages[{i}] is not a message: {type(item).__name__}")
    return entries


@dataclass(frozen=True)
class LinkedContext:
    """An auxiliary conversation included for background knowledge."""
    chat_id: str
    subject: str
    messages: Tuple[Entry, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "messages", tuple(coerce_messages(list(self.messages))))

    @classmethod
    def from_any(cls, value: Any) -> "LinkedContext":
        if isinstance(value, LinkedContext):
            return value
        if not isinstance(value, Mapping):
            raise ValidationError(f"Linked context must be a mapping, got {type(value).__name__}")
        chat_id = value.get("chatId", value.get("chat_id"))
        if chat_id is None:
            raise ValidationError("Linked context missing chatId")
        messages = value.get("messages") or []
        if not isinstance(messages, (list, tuple)):
            raise ValidationError("Linked context messages must be a list")
        return cls(chat_id=str(chat_id), subject=str(value.get("subject", "")), messages=tuple(messages))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chat_id": self.chat_id,
            "subject": self.subject,
            "messages": [m.to_dict() for m in self.messages],
        }


@dataclass
class Chunk:
    """Consecutive older messages scored together by the relevance ranker."""
    messages: List[Entry]
    relevance: float
    last_timestamp: datetime
    start_index: int = 0
    tokens: int = 0


@dataclass
class Analysis:
    """What a user query needs from the history."""
    strategy: Strategy = Strategy.NORMAL
    referenced_indices: List[int] = field(default_factory=list)
    recommended_window_size: int = 10
    summary_detail: DetailLevel = DetailLevel.CONCISE
    has_message_references: bool = False
    has_full_conversation_reference: bool = False
    needs_broad_context: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "referenced_indices": list(self.referenced_indices),
            "recommended_window_size": self.recommended_window_size,
            "summary_detail": self.summary_detail.value,
            "has_message_references": self.has_message_references,
            "has_full_conversation_reference": self.has_full_conversation_reference,
            "needs_broad_context": self.needs_broad_context,
        }


@dataclass
class Recommendation:
    """History indices to hand to the compressor."""
    include_indices: List[int]
    strategy: Strategy
    summary_detail: DetailLevel
    context_window: int


@dataclass
class CompressionResult:
    """Result of a compression pass."""
    messages: List[Entry]
    was_compressed: bool
    ratio: float
    original_count: int
    compressed_count: int
    tokens_before: int = 0
    tokens_after: int = 0


@dataclass
class SummarizationResult:
    """Result of a summarization pass."""
    messages: List[Entry]
    was_summarized: bool
    ratio: float
    original_count: int
    summarized_count: int
    cache_hit: bool = False
    summary: Optional[str] = None


@dataclass
class RankingResult:
    """Result of relevance-based selection."""
    messages: List[Entry]
    method: Method
    diagnostics: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OptimizationResult:
    """Final bounded context for one optimize() call."""
    messages: Tuple[Entry, ...]
    linked_contexts: Tuple[LinkedContext, ...]
    optimized: bool
    method: Method
    diagnostics: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "messages", tuple(self.messages))
        object.__setattr__(self, "linked_contexts", tuple(self.linked_contexts))
        object.__setattr__(self, "diagnostics", MappingProxyType(dict(self.diagnostics)))

    @property
    def degraded(self) -> bool:
        return bool(self.diagnostics.get("degraded", False))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "linked_contexts": [c.to_dict() for c in self.linked_contexts],
            "optimized": self.optimized,
            "method": self.method.value,
            "diagnostics": dict(self.diagnostics),
        }


def is_chronological(entries: Sequence[Entry]) -> bool:
    """True when timestamps never decrease."""
    return all(a.timestamp <= b.timestamp for a, b in zip(entries, entries[1:]))
