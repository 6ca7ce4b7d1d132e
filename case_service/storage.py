from __future__ import annotations

import abc
import hashlib
from urllib.parse import quote

from document_rules.exceptions import StorageError


class ObjectStore(abc.ABC):
    @abc.abstractmethod
    async def put(self, bucket: str, path: str, content: bytes, *, content_type: str) -> str:
        raise NotImplementedError

    @abc.abstractmethod
    async def remove(self, bucket: str, paths: list[str]) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        raise NotImplementedError


class InMemoryObjectStore(ObjectStore):
    def __init__(self, base_url: str = "memory://storage") -> None:
        self.base_url = base_url
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}

    async def put(self, bucket: str, path: str, content: bytes, *, content_type: str) -> str:
        key = (bucket, path)
        if key in self.objects:
            raise StorageError(f"Object already exists: {bucket}/{path}")
        self.objects[key] = (content, content_type)
        return hashlib.sha256(content).hexdigest()

    async def remove(self, bucket: str, paths: list[str]) -> None:
        for path in paths:
            self.objects.pop((bucket, path), None)

    async def signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        if (bucket, path) not in self.objects:
            raise StorageError(f"Object not found: {bucket}/{path}")
        token = hashlib.sha256(f"{bucket}/{path}:{ttl_seconds}".encode()).hexdigest()[:16]
        return f"{self.base_url}/{bucket}/{quote(path)}?token={token}&expires_in={ttl_seconds}"
