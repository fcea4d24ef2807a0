"""Configuration package."""

from .settings import (
    get_app_name,
    get_app_version,
    get_database_path,
    get_default_output_dir,
    get_log_level,
    get_sequences_file,
    get_transaction_max_attempts,
)
from .sequence_loader import SequenceDefinition, get_sequence, load_sequences

__all__ = [
    'get_app_name',
    'get_app_version',
    'get_database_path',
    'get_default_output_dir',
    'get_log_level',
    'get_sequences_file',
    'get_transaction_max_attempts',
    'SequenceDefinition',
    'get_sequence',
    'load_sequences',
]
