"""Remote validity checks consumed by the open-time sweep."""

from __future__ import annotations

from collections.abc import Iterable
from fnmatch import fnmatchcase
from typing import Protocol


class RemoteValidator(Protocol):
    """Decides whether a (tag, destination) identity is still worth retrying."""

    def valid(self, tag: str, destination: str) -> bool:
        """Return False when the task should be purged."""


class AllowlistRemoteValidator:
    """Accept destinations that match one of the configured remotes.

    Entries are exact destination names or ``fnmatch`` patterns such as
    ``build-index-*:8080``. An empty allowlist rejects every destination.
    """

    def __init__(self, remotes: Iterable[str]) -> None:
        self.remotes = tuple(remote.strip() for remote in remotes if remote.strip())

    def valid(self, tag: str, destination: str) -> bool:  # noqa: ARG002
        return any(
            destination == remote or fnmatchcase(destination, remote)
            for remote in self.remotes
        )


class AcceptAllValidator:
    """Keep every persisted task."""

    def valid(self, tag: str, destination: str) -> bool:  # noqa: ARG002
        return True
