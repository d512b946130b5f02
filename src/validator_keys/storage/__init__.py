"""Key file persistence."""
from __future__ import annotations

from validator_keys.storage.key_file import EXTERNAL_SECRET, KeyFile, KeyFileDocument

__all__ = ["EXTERNAL_SECRET", "KeyFile", "KeyFileDocument"]
