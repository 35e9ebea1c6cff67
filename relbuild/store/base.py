"""Remote object store interface."""

from __future__ import annotations

import builtins
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from relbuild.core.errors import StoreError
from relbuild.core.result import Result

__all__ = ["MAX_LIST_KEYS", "RemoteStore", "StoreObject"]

# Single listing page. A listing that does not fit is an error: paging is
# not implemented.
MAX_LIST_KEYS = 1000


@dataclass(frozen=True, slots=True)
class StoreObject:
    key: str
    size: int


class RemoteStore(Protocol):
    """Operations the pipeline needs from an object store.

    Keys are full paths inside the bucket ("sumatrapdf/prerel/<name>").
    """

    def list(self, prefix: str) -> Result[builtins.list[StoreObject], StoreError]: ...

    def exists(self, key: str) -> Result[bool, StoreError]: ...

    def upload(self, local_path: Path, key: str) -> Result[None, StoreError]: ...

    def upload_string(self, key: str, content: str) -> Result[None, StoreError]: ...

    def delete(self, key: str) -> Result[None, StoreError]: ...
