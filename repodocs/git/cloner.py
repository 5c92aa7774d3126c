"""Cancellable, time-bounded repository clones backed by pygit2."""

from __future__ import annotations

import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import pygit2

from ..cancellation import CancellationToken
from ..errors import (
    AuthenticationError,
    CancelledError,
    CloneTimeoutError,
    GitOperationError,
    NetworkError,
    RepoDocsError,
    RepositoryNotFoundError,
)
from ..logging import get_logger
from ..models import CloneProgress, RepositoryInfo
from ..pathguard import validate_repository_url

ProgressCallback = Callable[[CloneProgress], Optional[bool]]
CloneFunction = Callable[..., pygit2.Repository]

DEFAULT_TIMEOUT = 300.0
MAX_CREDENTIAL_ATTEMPTS = 3

_AUTH_MARKERS = ("authentication", "credentials", "401", "403", "unauthorized", "permission denied")
_NOT_FOUND_MARKERS = ("not found", "404", "does not exist", "repository not found")
_NETWORK_MARKERS = (
    "resolve",
    "connect",
    "network",
    "timed out",
    "timeout",
    "unreachable",
    "ssl",
    "certificate",
)


class CloneAborted(Exception):
    """Raised from a transfer callback to stop libgit2 mid-transfer."""


@dataclass
class CloneOutcome:
    """A finished clone; owns the temporary directory holding the checkout."""

    repository: pygit2.Repository
    temp_dir: tempfile.TemporaryDirectory
    info: RepositoryInfo

    @property
    def path(self) -> Path:
        return Path(self.temp_dir.name)

    def cleanup(self) -> None:
        self.repository.free()
        self.temp_dir.cleanup()

    def __enter__(self) -> "CloneOutcome":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()


class CloneCallbacks(pygit2.RemoteCallbacks):
    """Remote callbacks enforcing the timeout, cancellation and credential policy."""

    def __init__(
        self,
        *,
        timeout: float,
        cancel_token: CancellationToken,
        progress_callback: ProgressCallback | None = None,
        token: str | None = None,
        ssh_key_path: Path | None = None,
        allow_invalid_certs: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__()
        self._timeout = timeout
        self._cancel_token = cancel_token
        self._progress_callback = progress_callback
        self._token = token
        self._ssh_key_path = ssh_key_path
        self._allow_invalid_certs = allow_invalid_certs
        self._clock = clock
        self._started = clock()
        self._credential_attempts = 0
        self.timed_out = False
        self.cancelled = False
        self.logger = get_logger("git.cloner")

    def elapsed(self) -> float:
        return self._clock() - self._started

    def transfer_progress(self, stats: Any) -> None:
        if self.elapsed() > self._timeout:
            self.timed_out = True
            self.logger.warning("Clone exceeded %.0f seconds; aborting transfer", self._timeout)
            raise CloneAborted("clone timed out")
        if self._cancel_token.cancelled:
            self.cancelled = True
            raise CloneAborted("clone cancelled")
        if self._progress_callback is not None:
            keep_going = self._progress_callback(CloneProgress.from_stats(stats))
            if keep_going is False:
                self.cancelled = True
                raise CloneAborted("clone cancelled by progress callback")

    def credentials(
        self,
        url: str,
        username_from_url: str | None,
        allowed_types: pygit2.enums.CredentialType,
    ) -> pygit2.credentials.Username | pygit2.credentials.UserPass | pygit2.credentials.Keypair:
        self._credential_attempts += 1
        if self._credential_attempts > MAX_CREDENTIAL_ATTEMPTS:
            raise pygit2.GitError("authentication failed: credentials rejected by remote")

        username = username_from_url or "git"
        if allowed_types & pygit2.enums.CredentialType.USERPASS_PLAINTEXT and self._token:
            self.logger.debug("Using token credentials for %s", url)
            return pygit2.UserPass(username, self._token)
        if allowed_types & pygit2.enums.CredentialType.SSH_KEY:
            key_path = self._ssh_key_path or Path.home() / ".ssh" / "id_rsa"
            if username_from_url and key_path.exists():
                public_key = key_path.with_name(key_path.name + ".pub")
                self.logger.debug("Using SSH key %s for %s", key_path, url)
                return pygit2.Keypair(
                    username,
                    str(public_key) if public_key.exists() else None,
                    str(key_path),
                    "",
                )
            return pygit2.KeypairFromAgent(username)
        if allowed_types & pygit2.enums.CredentialType.USERNAME:
            return pygit2.Username(username)
        raise pygit2.GitError("authentication required but no credentials are available")

    def certificate_check(self, certificate: Any, valid: bool, host: bytes | str) -> bool:
        if valid:
            return True
        if self._allow_invalid_certs:
            self.logger.warning("Accepting invalid certificate for %s", host)
            return True
        return False


class SafeCloner:
    """Clones allow-listed repositories into temporary directories."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        branch: str | None = None,
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        *,
        token_env: str = "GITHUB_TOKEN",
        ssh_key_path: Path | None = None,
        allow_invalid_certs: bool = False,
        depth: int | None = None,
        clone_fn: CloneFunction | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout = float(timeout)
        self.branch = branch
        self.progress_callback = progress_callback
        self.cancel_token = cancel_token or CancellationToken()
        self.token_env = token_env
        self.ssh_key_path = ssh_key_path
        self.allow_invalid_certs = allow_invalid_certs
        self.depth = depth
        self._clone_fn = clone_fn or pygit2.clone_repository
        self._clock = clock
        self.logger = get_logger("git.cloner")

    def cancel(self) -> None:
        self.cancel_token.cancel()

    def is_running(self) -> bool:
        return self.cancel_token.is_running()

    def build_callbacks(self) -> CloneCallbacks:
        return CloneCallbacks(
            timeout=self.timeout,
            cancel_token=self.cancel_token,
            progress_callback=self.progress_callback,
            token=os.environ.get(self.token_env) or None,
            ssh_key_path=self.ssh_key_path,
            allow_invalid_certs=self.allow_invalid_certs,
            clock=self._clock,
        )

    def clone_to_temp(self, url: str) -> CloneOutcome:
        """Clone ``url`` into a fresh temporary directory and describe the checkout."""
        source = validate_repository_url(url)
        self.cancel_token.raise_if_cancelled()

        temp_dir = tempfile.TemporaryDirectory(prefix="repodocs-")
        try:
            self.logger.info("Cloning %s/%s into %s", source.owner, source.name, temp_dir.name)
            repository = self._clone(url.strip(), Path(temp_dir.name))
            info = RepositoryInfo.from_repository(repository, url.strip())
        except BaseException:
            temp_dir.cleanup()
            raise
        self.logger.debug("Clone finished: %d commits on %s", info.total_commits, info.default_branch)
        return CloneOutcome(repository=repository, temp_dir=temp_dir, info=info)

    def _clone(self, url: str, destination: Path) -> pygit2.Repository:
        callbacks = self.build_callbacks()
        kwargs: dict[str, Any] = {"callbacks": callbacks}
        if self.branch:
            kwargs["checkout_branch"] = self.branch
        if self.depth:
            kwargs["depth"] = self.depth
        try:
            return self._clone_fn(url, str(destination), **kwargs)
        except CloneAborted as exc:
            raise self._classify(url, callbacks, str(exc)) from exc
        except pygit2.GitError as exc:
            raise self._classify(url, callbacks, str(exc)) from exc

    def _classify(self, url: str, callbacks: CloneCallbacks, message: str) -> RepoDocsError:
        if callbacks.timed_out:
            return CloneTimeoutError(self.timeout)
        if callbacks.cancelled or self.cancel_token.cancelled:
            return CancelledError()
        return classify_git_error(url, message)


def classify_git_error(url: str, message: str) -> RepoDocsError:
    """Map transport error text onto the repodocs error taxonomy."""
    lowered = message.lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return AuthenticationError(url)
    if any(marker in lowered for marker in _NOT_FOUND_MARKERS):
        return RepositoryNotFoundError(url)
    if any(marker in lowered for marker in _NETWORK_MARKERS):
        return NetworkError(url)
    return GitOperationError(message)


__all__ = [
    "CloneAborted",
    "CloneCallbacks",
    "CloneOutcome",
    "SafeCloner",
    "classify_git_error",
]
