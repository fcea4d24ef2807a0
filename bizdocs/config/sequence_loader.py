"""Loader for document number sequence definitions."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .settings import get_sequences_file


@dataclass(frozen=True)
class SequenceDefinition:
    """How one kind of business document is numbered.

    Attributes:
        name: Sequence name used by callers (e.g. "quote")
        counter_id: Id of the counter document in the counters collection
        prefix: Id prefix (e.g. "QT")
        pad_width: Zero-padding width of the running number
        collection: Collection the numbered documents are written to
        separator: Text between year and running number
    """
    name: str
    counter_id: str
    prefix: str
    pad_width: int
    collection: str
    separator: str = "-"

    def __post_init__(self):
        if not self.name:
            raise ValueError("Sequence name must not be empty")
        if not self.counter_id:
            raise ValueError(f"Sequence {self.name}: counter_id must not be empty")
        if not self.collection:
            raise ValueError(f"Sequence {self.name}: collection must not be empty")
        if self.pad_width < 1:
            raise ValueError(f"Sequence {self.name}: pad_width must be >= 1, got {self.pad_width}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SequenceDefinition':
        """Create SequenceDefinition from dictionary."""
        missing = [k for k in ("name", "counter_id", "prefix", "pad_width", "collection") if k not in data]
        if missing:
            who = data.get("name", "<unnamed>")
            raise ValueError(f"Sequence {who} is missing keys: {missing}")
        return cls(
            name=str(data["name"]),
            counter_id=str(data["counter_id"]),
            prefix=str(data["prefix"]),
            pad_width=int(data["pad_width"]),
            collection=str(data["collection"]),
            separator=str(data.get("separator", "-")),
        )


def get_default_sequences_path() -> Path:
    """Path of the sequence file bundled with the package."""
    return Path(__file__).resolve().parent / "sequences.yaml"


def load_sequences(path: Optional[Path] = None) -> Dict[str, SequenceDefinition]:
    """Load sequence definitions keyed by name.

    Args:
        path: YAML file to read. Defaults to BIZDOCS_SEQUENCES_FILE, then the bundled file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty, malformed or has duplicate names
    """
    if path is None:
        path = get_sequences_file() or get_default_sequences_path()
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Sequence definitions not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in sequence file {path}: {e}") from e

    if not data:
        raise ValueError(f"Sequence file is empty: {path}")
    if not isinstance(data, dict) or not isinstance(data.get("sequences"), list):
        raise ValueError(f"Sequence file {path} must contain a 'sequences' list")

    sequences: Dict[str, SequenceDefinition] = {}
    for idx, row in enumerate(data["sequences"]):
        if not isinstance(row, dict):
            raise ValueError(f"sequences[{idx}] in {path} must be a mapping")
        definition = SequenceDefinition.from_dict(row)
        if definition.name in sequences:
            raise ValueError(f"Duplicate sequence name in {path}: {definition.name}")
        sequences[definition.name] = definition

    return sequences


def get_sequence(name: str, sequences: Optional[Dict[str, SequenceDefinition]] = None) -> SequenceDefinition:
    """Look up one sequence definition by name.

    Raises:
        KeyError: If no sequence has that name
    """
    if sequences is None:
        sequences = load_sequences()
    if name not in sequences:
        raise KeyError(f"Unknown sequence: {name} (available: {', '.join(sorted(sequences))})")
    return sequences[name]
