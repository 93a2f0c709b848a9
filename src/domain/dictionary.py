"""Dictionary entry model, tagged-variant codec and priority reordering.

Entries are matched and displayed in descending priority order. The wire
format encodes ``method`` as the bare tag for ``Replace`` / ``None`` and as a
single-key object ``{"Converter": "<id>"}`` for the converter variant.

Decoding fails closed: an unrecognized method shape raises
``DictionaryDecodeError`` instead of silently defaulting, because the whole
collection is re-persisted after every edit and a silent default would be
written back to disk on the next save.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from config import settings

__all__ = [
    "ConversionMethod",
    "ConverterInfo",
    "DictionaryEntry",
    "Dictionary",
    "DictionaryDecodeError",
    "AVAILABLE_CONVERTERS",
    "get_converter_info",
    "default_entry",
    "with_method",
    "encode_entry",
    "decode_entry",
    "encode_dictionary",
    "decode_dictionary",
    "move_entry",
    "sorted_by_priority",
]


class DictionaryDecodeError(ValueError):
    """Raised when a wire-encoded dictionary entry is malformed."""


class ConversionMethod(str, Enum):
    REPLACE = "Replace"
    NONE = "None"
    CONVERTER = "Converter"


@dataclass(frozen=True)
class ConverterInfo:
    id: str
    name: str
    description: str


AVAILABLE_CONVERTERS: tuple[ConverterInfo, ...] = (
    ConverterInfo("r", "Romaji to kanji", "Converts romaji input to kanji"),
    ConverterInfo("h", "Hiragana", "Converts input to hiragana"),
    ConverterInfo("k", "Katakana", "Converts input to katakana"),
    ConverterInfo("c", "Calculator", "Evaluates arithmetic expressions"),
    ConverterInfo("n", "No conversion", "Outputs input unchanged"),
)


def get_converter_info(converter_id: str) -> Optional[ConverterInfo]:
    for info in AVAILABLE_CONVERTERS:
        if info.id == converter_id:
            return info
    return None


@dataclass(frozen=True)
class DictionaryEntry:
    """Single dictionary rule.

    ``output`` is set only for ``Replace``; ``converter_id`` only for
    ``Converter``. Use ``with_method`` to switch variants so both stay
    consistent.
    """

    input: str
    method: ConversionMethod
    output: Optional[str] = None
    converter_id: Optional[str] = None
    use_regex: bool = False
    priority: int = 0

    def __post_init__(self) -> None:
        if (self.output is not None) != (self.method is ConversionMethod.REPLACE):
            raise ValueError("output must be set if and only if method is Replace")
        if (self.converter_id is not None) != (self.method is ConversionMethod.CONVERTER):
            raise ValueError("converter_id must be set if and only if method is Converter")


@dataclass
class Dictionary:
    entries: List[DictionaryEntry] = field(default_factory=list)

    def add(self, entry: DictionaryEntry) -> "Dictionary":
        return Dictionary(entries=[*self.entries, entry])

    def replace(self, index: int, entry: DictionaryEntry) -> "Dictionary":
        _check_index(self.entries, index)
        new_entries = list(self.entries)
        new_entries[index] = entry
        return Dictionary(entries=new_entries)

    def remove(self, index: int) -> "Dictionary":
        _check_index(self.entries, index)
        return Dictionary(entries=self.entries[:index] + self.entries[index + 1 :])

    def move(self, index: int, direction: str) -> "Dictionary":
        return Dictionary(entries=move_entry(self.entries, index, direction))


def default_entry() -> DictionaryEntry:
    return DictionaryEntry(input="", method=ConversionMethod.REPLACE, output="")


def with_method(entry: DictionaryEntry, method: ConversionMethod) -> DictionaryEntry:
    """Switch ``entry`` to ``method`` keeping the variant fields consistent.

    Leaving ``Replace`` drops the output; entering ``Converter`` without an id
    picks the default converter.
    """
    output = entry.output if method is ConversionMethod.REPLACE else None
    if method is ConversionMethod.REPLACE and output is None:
        output = ""
    converter_id = None
    if method is ConversionMethod.CONVERTER:
        converter_id = entry.converter_id or settings.DEFAULT_CONVERTER_ID
    return replace(entry, method=method, output=output, converter_id=converter_id)


# ----------------------------------------------------------------------
# Wire codec
# ----------------------------------------------------------------------
def encode_entry(entry: DictionaryEntry) -> Dict[str, Any]:
    method: Any
    if entry.method is ConversionMethod.CONVERTER:
        method = {ConversionMethod.CONVERTER.value: entry.converter_id}
    else:
        method = entry.method.value
    data: Dict[str, Any] = {
        "input": entry.input,
        "method": method,
        "use_regex": entry.use_regex,
        "priority": entry.priority,
    }
    if entry.method is ConversionMethod.REPLACE:
        data["output"] = entry.output
    return data


def decode_entry(data: Mapping[str, Any], index: int) -> DictionaryEntry:
    """Decode one wire entry; ``index`` is the fallback priority."""
    if not isinstance(data, Mapping):
        raise DictionaryDecodeError(f"entry {index}: expected object, got {type(data).__name__}")
    text = data.get("input")
    if not isinstance(text, str):
        raise DictionaryDecodeError(f"entry {index}: 'input' must be a string")

    raw_method = data.get("method")
    output: Optional[str] = None
    converter_id: Optional[str] = None
    if isinstance(raw_method, str):
        if raw_method == ConversionMethod.REPLACE.value:
            method = ConversionMethod.REPLACE
            output = data.get("output")
            if output is None:
                output = ""
            elif not isinstance(output, str):
                raise DictionaryDecodeError(f"entry {index}: 'output' must be a string")
        elif raw_method == ConversionMethod.NONE.value:
            method = ConversionMethod.NONE
        else:
            raise DictionaryDecodeError(f"entry {index}: unrecognized method tag {raw_method!r}")
    elif isinstance(raw_method, Mapping) and list(raw_method) == [ConversionMethod.CONVERTER.value]:
        method = ConversionMethod.CONVERTER
        converter_id = raw_method[ConversionMethod.CONVERTER.value]
        if not isinstance(converter_id, str):
            raise DictionaryDecodeError(f"entry {index}: converter id must be a string")
    else:
        raise DictionaryDecodeError(f"entry {index}: unrecognized method {raw_method!r}")

    use_regex = data.get("use_regex", False)
    if not isinstance(use_regex, bool):
        raise DictionaryDecodeError(f"entry {index}: 'use_regex' must be a bool")

    priority = data.get("priority")
    if priority is None:
        priority = index
    elif isinstance(priority, bool) or not isinstance(priority, int):
        raise DictionaryDecodeError(f"entry {index}: 'priority' must be an integer")

    return DictionaryEntry(
        input=text,
        method=method,
        output=output,
        converter_id=converter_id,
        use_regex=use_regex,
        priority=priority,
    )


def encode_dictionary(dictionary: Dictionary) -> Dict[str, Any]:
    return {"entries": [encode_entry(e) for e in dictionary.entries]}


def decode_dictionary(data: Mapping[str, Any]) -> Dictionary:
    if not isinstance(data, Mapping):
        raise DictionaryDecodeError("dictionary payload must be an object")
    raw_entries = data.get("entries", [])
    if not isinstance(raw_entries, list):
        raise DictionaryDecodeError("'entries' must be a list")
    return Dictionary(entries=[decode_entry(raw, i) for i, raw in enumerate(raw_entries)])


# ----------------------------------------------------------------------
# Ordering
# ----------------------------------------------------------------------
def move_entry(entries: Sequence[DictionaryEntry], index: int, direction: str) -> List[DictionaryEntry]:
    """Swap the entry at ``index`` with its neighbour in ``direction``.

    Both the priority values and the list positions are exchanged, so list
    order and descending-priority order stay aligned. Every other entry is
    untouched. Out-of-range moves return an unchanged copy.
    """
    if direction not in ("up", "down"):
        raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
    result = list(entries)
    if len(result) <= 1:
        return result
    _check_index(result, index)
    other = index - 1 if direction == "up" else index + 1
    if other < 0 or other >= len(result):
        return result
    current, neighbour = result[index], result[other]
    result[other] = replace(current, priority=neighbour.priority)
    result[index] = replace(neighbour, priority=current.priority)
    return result


def sorted_by_priority(entries: Sequence[DictionaryEntry]) -> List[DictionaryEntry]:
    """Descending priority; ties keep their list position (stable sort)."""
    return sorted(entries, key=lambda e: -e.priority)


def _check_index(entries: Sequence[Any], index: int) -> None:
    if index < 0 or index >= len(entries):
        raise IndexError(f"entry index {index} out of range (0..{len(entries) - 1})")
