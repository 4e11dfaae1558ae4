"""
L1 Domain — npm failure classification (pure).

Maps captured npm output to the retry decision the installers take.
No I/O, no subprocess.
"""

from __future__ import annotations

from enum import StrEnum

from toolwarden.core.services.tool_install.data.constants import (
    BENIGN_AUXILIARY_DOWNLOADS,
    BENIGN_AUXILIARY_STATUS,
    CACHE_CONFLICT_SIGNATURES,
    LOCK_SIGNATURES,
    NOT_EMPTY_SIGNATURES,
)


class InstallFailure(StrEnum):
    """What a failed ``npm install`` output looks like."""

    CACHE_CONFLICT = "cache_conflict"   # clean cache, retry once
    NOT_EMPTY = "not_empty"             # wait, force-remove dir, retry once
    OTHER = "other"                     # terminal


class UpdateFailure(StrEnum):
    """What a failed update output looks like."""

    BENIGN_AUXILIARY = "benign_auxiliary"   # warn, treat as success
    FILE_LOCK = "file_lock"                 # retry with backoff, benign if exhausted
    OTHER = "other"


def _contains_any(output: str, needles: tuple[str, ...]) -> bool:
    return any(n in output for n in needles)


def classify_install_failure(output: str) -> InstallFailure:
    """Classify a failed install by its npm error signature.

    Permission/already-exists wins over not-empty when both appear:
    the cache clean also covers the not-empty case.
    """
    if not output:
        return InstallFailure.OTHER
    if _contains_any(output, CACHE_CONFLICT_SIGNATURES):
        return InstallFailure.CACHE_CONFLICT
    if _contains_any(output, NOT_EMPTY_SIGNATURES):
        return InstallFailure.NOT_EMPTY
    return InstallFailure.OTHER


def is_lock_error(output: str) -> bool:
    """File held open by another process (EPERM/EBUSY/ENOTEMPTY...)."""
    return bool(output) and _contains_any(output, LOCK_SIGNATURES)


def is_benign_auxiliary_failure(output: str) -> bool:
    """An auxiliary postinstall download was rate limited (HTTP 403)."""
    if not output or BENIGN_AUXILIARY_STATUS not in output:
        return False
    return _contains_any(output, BENIGN_AUXILIARY_DOWNLOADS)


def classify_update_failure(output: str) -> UpdateFailure:
    if is_benign_auxiliary_failure(output):
        return UpdateFailure.BENIGN_AUXILIARY
    if is_lock_error(output):
        return UpdateFailure.FILE_LOCK
    return UpdateFailure.OTHER
