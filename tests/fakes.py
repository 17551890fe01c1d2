"""In-memory stand-ins for the object store and the optimizer binaries."""

from __future__ import annotations

import hashlib
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple, Union

from imgsqueeze.errors import DownloadFailure, UploadFailure
from imgsqueeze.models import ContainerRef, StoredObject
from imgsqueeze.utils import matches_any

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff\xe0"


def png_bytes(size: int) -> bytes:
    return PNG_SIGNATURE + b"\x00" * (size - len(PNG_SIGNATURE))


def jpeg_bytes(size: int) -> bytes:
    return JPEG_SIGNATURE + b"\x00" * (size - len(JPEG_SIGNATURE))


def _etag(data: bytes) -> str:
    return '"' + hashlib.md5(data).hexdigest() + '"'


@dataclass
class Blob:
    data: bytes
    metadata: Dict[str, str] = field(default_factory=dict)
    etag: str = ""
    headers: Dict[str, str] = field(default_factory=dict)


class MemoryStore:
    """Dict-backed ``ObjectStore`` that can be told to fail on given names."""

    def __init__(self) -> None:
        self.blobs: Dict[str, Blob] = {}
        self.fail_get: Set[str] = set()
        self.fail_put: Set[str] = set()
        self.puts: List[str] = []
        self.gets: List[str] = []

    def add(
        self,
        name: str,
        data: bytes,
        metadata: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.blobs[name] = Blob(
            data=data,
            metadata=dict(metadata or {}),
            etag=_etag(data),
            headers=dict(headers or {}),
        )

    def list(self, container: ContainerRef, patterns: Sequence[str]) -> Iterator[StoredObject]:
        for name, blob in self.blobs.items():
            if name.startswith(container.prefix) and matches_any(name, patterns):
                yield StoredObject(
                    name=name,
                    size=len(blob.data),
                    metadata=dict(blob.metadata),
                    etag=blob.etag,
                    headers=dict(blob.headers),
                )

    def get(self, container: ContainerRef, name: str, destination: Path) -> None:
        self.gets.append(name)
        if name in self.fail_get:
            raise DownloadFailure(f"simulated download failure for {name}")
        destination.write_bytes(self.blobs[name].data)

    def put(
        self,
        container: ContainerRef,
        name: str,
        source: Path,
        metadata: Mapping[str, str],
        overwrite: bool = True,
        if_match: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        if name in self.fail_put:
            raise UploadFailure(f"simulated upload failure for {name}")
        current = self.blobs.get(name)
        if current is not None and not overwrite:
            raise UploadFailure(f"{name} already exists")
        if if_match is not None and (current is None or current.etag != if_match):
            raise UploadFailure(f"precondition failed for {name}")
        data = source.read_bytes()
        self.blobs[name] = Blob(
            data=data,
            metadata=dict(metadata),
            etag=_etag(data),
            headers=dict(headers or {}),
        )
        self.puts.append(name)

    def snapshot(self) -> Dict[str, Tuple[bytes, Dict[str, str]]]:
        return {name: (blob.data, dict(blob.metadata)) for name, blob in self.blobs.items()}


ToolStep = Union[Tuple[int, str], BaseException]


class FakeTools:
    """Replacement for ``subprocess.run`` that resizes the target file.

    ``script`` maps a file's base name to either ``(new_size, output)`` or an
    exception to raise in place of launching the tool.
    """

    def __init__(self) -> None:
        self.script: Dict[str, ToolStep] = {}
        self.calls: List[List[str]] = []
        self.seen_paths: List[Path] = []

    def __call__(self, command, **kwargs):
        self.calls.append(list(command))
        path = Path(command[-1])
        self.seen_paths.append(path)
        step = self.script.get(path.name, (None, ""))
        if isinstance(step, BaseException):
            raise step
        new_size, output = step
        if new_size is not None:
            data = path.read_bytes()
            if new_size <= len(data):
                data = data[:new_size]
            else:
                data = data + b"\x00" * (new_size - len(data))
            path.write_bytes(data)
        return subprocess.CompletedProcess(command, 0, stdout=output, stderr=None)
