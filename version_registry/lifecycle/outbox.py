"""
Publication notice synthesis and outbox storage.

Publishing a version produces a notice (an .eml file with the subject and
body of the draft) and a release-notes markdown file, both named from the
version id. They only appear under those names once the publish reaches its
commit; a publish that fails leaves no files behind.

Design principle: treat storage as a URI, not a path.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple
from urllib.parse import urlparse

import structlog

from ..db.models import VersionModel
from ..primitives import generate_ulid

logger = structlog.get_logger()


@dataclass(frozen=True)
class PublicationNotice:
    """Everything written to the outbox for one publication."""

    subject: str
    body: str
    notice_name: str
    notice_content: str
    release_notes_name: str
    release_notes_content: str


def compose_notice(version: VersionModel) -> PublicationNotice:
    """Build the deterministic notice for a version."""
    subject = (
        f"PUBLICATION REQUEST {version.product} {version.version_string}"
        f" _ {version.build_date}"
    )
    body = (
        f"Publication of version {version.product} {version.version_string}"
        f" (build {version.build_date}) for client {version.client}"
    )
    release_notes = "\n".join(
        [
            "# Release Notes",
            "",
            f"- Client: {version.client}",
            f"- Product: {version.product}",
            f"- Version: {version.version_string}",
            f"- Build: {version.build_date}",
        ]
    )
    return PublicationNotice(
        subject=subject,
        body=body,
        notice_name=f"pub_{version.id}.eml",
        notice_content=f"Subject: {subject}\n\n{body}",
        release_notes_name=f"release-notes_{version.id}.md",
        release_notes_content=release_notes + "\n",
    )


class OutboxStore(ABC):
    """Abstract base class for outbox storage."""

    @abstractmethod
    def ensure_dir(self) -> None:
        """Ensure the outbox location exists."""
        pass

    @abstractmethod
    def write_text(self, name: str, content: str) -> str:
        """Write text content under ``name`` and return where it landed."""
        pass

    @abstractmethod
    def location(self, name: str) -> str:
        """Return where ``name`` lives in this outbox."""
        pass

    @abstractmethod
    def rename(self, source: str, target: str) -> str:
        """Atomically move ``source`` to ``target``, replacing it if present."""
        pass

    @abstractmethod
    def remove(self, name: str) -> None:
        """Delete ``name``; a missing entry is not an error."""
        pass

    @abstractmethod
    def get_uri(self) -> str:
        """Get the full URI of this outbox."""
        pass


class FileOutboxStore(OutboxStore):
    """Local filesystem outbox (file:// URIs)."""

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)

    def ensure_dir(self) -> None:
        self.base_path.mkdir(parents=True, exist_ok=True)

    def write_text(self, name: str, content: str) -> str:
        full_path = self.base_path / name
        full_path.write_text(content, encoding="utf-8")
        return str(full_path)

    def location(self, name: str) -> str:
        return str(self.base_path / name)

    def rename(self, source: str, target: str) -> str:
        target_path = self.base_path / target
        (self.base_path / source).replace(target_path)
        return str(target_path)

    def remove(self, name: str) -> None:
        (self.base_path / name).unlink(missing_ok=True)

    def get_uri(self) -> str:
        return f"file://{self.base_path}"


def create_outbox_store(uri: str) -> OutboxStore:
    """Factory function to create the OutboxStore for a URI or local path.

    Args:
        uri: ``file:///var/lib/versions/outbox`` or a plain filesystem path

    Raises:
        ValueError: If the URI scheme is not supported
    """
    parsed = urlparse(uri)

    if parsed.scheme == "file":
        return FileOutboxStore(Path(parsed.path))
    if parsed.scheme == "":
        return FileOutboxStore(Path(uri))

    raise ValueError(f"Unsupported outbox URI scheme: {parsed.scheme}")


class StagedOutbox:
    """Outbox files written by one publish that is not committed yet.

    Files are first written under hidden temporary names. ``promote`` moves
    them to their final names as the last step of the transaction and
    ``discard`` removes everything this publish wrote, staged or promoted.
    """

    def __init__(self, store: OutboxStore):
        self.store = store
        self._pending: List[Tuple[str, str]] = []
        self._promoted: List[str] = []

    def stage(self, name: str, content: str) -> None:
        staged_name = f".{name}.{generate_ulid()}.part"
        # Tracked before writing so a half-written file is still discarded
        self._pending.append((staged_name, name))
        self.store.write_text(staged_name, content)

    def location(self, name: str) -> str:
        return self.store.location(name)

    def promote(self) -> List[str]:
        """Move every staged file to its final name; return the final locations.

        Raises:
            OSError: If a move fails; files already moved stay tracked for
                ``discard``
        """
        while self._pending:
            staged_name, name = self._pending[0]
            self.store.rename(staged_name, name)
            self._pending.pop(0)
            self._promoted.append(name)
        return [self.store.location(name) for name in self._promoted]

    def discard(self) -> None:
        """Remove every file this publish wrote."""
        names = [staged for staged, _ in self._pending] + self._promoted
        self._pending = []
        self._promoted = []
        for name in names:
            try:
                self.store.remove(name)
            except OSError as exc:
                logger.warning(
                    "Could not remove outbox file",
                    outbox=self.store.get_uri(),
                    name=name,
                    error=str(exc),
                )


def stage_notice(store: OutboxStore, notice: PublicationNotice) -> StagedOutbox:
    """Write the notice and release notes under temporary names.

    Raises:
        OSError: If the underlying medium is unavailable; anything already
            written has been removed
    """
    store.ensure_dir()
    staged = StagedOutbox(store)
    try:
        staged.stage(notice.notice_name, notice.notice_content)
        staged.stage(notice.release_notes_name, notice.release_notes_content)
    except OSError:
        staged.discard()
        raise
    return staged
