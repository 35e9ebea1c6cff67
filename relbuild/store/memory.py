"""In-process object store.

Backs tests and dry runs. Faults can be injected per key to exercise the
pipeline's failure paths.
"""

from __future__ import annotations

import builtins
from dataclasses import dataclass, field
from pathlib import Path

from relbuild.core.errors import StoreError
from relbuild.core.result import Err, Ok, Result
from relbuild.store.base import MAX_LIST_KEYS, StoreObject


def _empty_objects() -> dict[str, bytes]:
    return {}


def _empty_keys() -> set[str]:
    return set()


def _empty_log() -> list[str]:
    return []


@dataclass
class MemoryStore:
    """Dict-backed RemoteStore.

    Attributes:
        objects: key -> content.
        fail_uploads: keys whose upload fails.
        fail_deletes: keys whose delete fails.
        uploaded: keys uploaded, in call order.
        deleted: keys deleted, in call order.
    """

    objects: dict[str, bytes] = field(default_factory=_empty_objects)
    fail_uploads: set[str] = field(default_factory=_empty_keys)
    fail_deletes: set[str] = field(default_factory=_empty_keys)
    max_keys: int = MAX_LIST_KEYS
    uploaded: builtins.list[str] = field(default_factory=_empty_log)
    deleted: builtins.list[str] = field(default_factory=_empty_log)

    def list(self, prefix: str) -> Result[builtins.list[StoreObject], StoreError]:
        keys = sorted(k for k in self.objects if k.startswith(prefix))
        if len(keys) > self.max_keys:
            return Err(
                StoreError(
                    "list",
                    f"listing of '{prefix}' truncated at {self.max_keys} keys",
                    key=prefix,
                )
            )
        return Ok([StoreObject(key=k, size=len(self.objects[k])) for k in keys])

    def exists(self, key: str) -> Result[bool, StoreError]:
        return Ok(key in self.objects)

    def upload(self, local_path: Path, key: str) -> Result[None, StoreError]:
        if key in self.fail_uploads:
            return Err(StoreError("upload", "injected upload failure", key=key))
        try:
            data = local_path.read_bytes()
        except OSError as e:
            return Err(StoreError("upload", f"cannot read {local_path}: {e}", key=key))
        self.objects[key] = data
        self.uploaded.append(key)
        return Ok(None)

    def upload_string(self, key: str, content: str) -> Result[None, StoreError]:
        if key in self.fail_uploads:
            return Err(StoreError("upload", "injected upload failure", key=key))
        self.objects[key] = content.encode("utf-8")
        self.uploaded.append(key)
        return Ok(None)

    def delete(self, key: str) -> Result[None, StoreError]:
        if key in self.fail_deletes:
            return Err(StoreError("delete", "injected delete failure", key=key))
        self.objects.pop(key, None)
        self.deleted.append(key)
        return Ok(None)
