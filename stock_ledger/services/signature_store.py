"""
Signature artifact lookup.

A signature confirmation only records a reference; the artifact itself (a
scanned or captured image) is stored elsewhere.  The confirmation service
asks a ``SignatureStore`` whether the reference names a non-empty artifact.
"""

from pathlib import Path
from typing import Protocol


class SignatureStore(Protocol):
    """Pluggable lookup for signature artifacts."""

    def exists(self, signature_ref: str) -> bool:
        """True if the artifact exists and is non-empty."""
        ...


class FileSignatureStore:
    """
    Signature artifacts as files under a root directory.

    References are paths relative to ``root``; a reference that resolves
    outside the root is treated as missing.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def resolve(self, signature_ref: str) -> Path | None:
        if not signature_ref or not signature_ref.strip():
            return None
        root = self.root.resolve()
        candidate = (root / signature_ref).resolve()
        if candidate != root and root not in candidate.parents:
            return None
        return candidate

    def exists(self, signature_ref: str) -> bool:
        path = self.resolve(signature_ref)
        if path is None or not path.is_file():
            return False
        return path.stat().st_size > 0


class InMemorySignatureStore:
    """Signature artifacts held in a dict; for tests and embedding."""

    def __init__(self, artifacts: dict[str, bytes] | None = None):
        self.artifacts: dict[str, bytes] = dict(artifacts or {})

    def put(self, signature_ref: str, data: bytes) -> None:
        self.artifacts[signature_ref] = data

    def exists(self, signature_ref: str) -> bool:
        return bool(self.artifacts.get(signature_ref))
