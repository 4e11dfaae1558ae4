"""
Tests for pure domain logic — version comparison, output parsing,
npm failure classification, error taxonomy.
"""

import pytest

from toolwarden.core.services.tool_install.domain.error_analysis import (
    InstallFailure,
    UpdateFailure,
    classify_install_failure,
    classify_update_failure,
    is_benign_auxiliary_failure,
    is_lock_error,
)
from toolwarden.core.services.tool_install.domain.errors import (
    IntegrityError,
    NotManagedError,
    ToolInstallError,
    ToolNotInstalledError,
    UnsupportedToolError,
)
from toolwarden.core.services.tool_install.domain.version_compare import (
    compare_versions,
    is_newer,
    parse_version_output,
)


class TestCompareVersions:
    @pytest.mark.parametrize("v1,v2,expected", [
        ("1.9.0", "1.10.0", -1),
        ("1.10.0", "1.9.0", 1),
        ("2.0", "2.0.0", 0),
        ("1.2.3-beta", "1.2.3", 0),
        ("v1.2.3", "1.2.3", 0),
        ("1.0.0", "1.0.1", -1),
        ("", "1.0.0", -1),
        ("0.2.29", "0.2.29", 0),
    ])
    def test_compare(self, v1, v2, expected):
        assert compare_versions(v1, v2) == expected

    def test_is_newer(self):
        assert is_newer("1.10.0", "1.9.9")
        assert not is_newer("1.0.0", "1.0.0")
        assert not is_newer("", "1.0.0")


class TestParseVersionOutput:
    @pytest.mark.parametrize("output,expected", [
        ("2.1.29 (Claude Code)\n", "2.1.29"),
        ("claude-code/0.2.29 darwin-arm64 node-v22.12.0", "0.2.29"),
        ("v1.2.3", "1.2.3"),
        ("0.9.1\n", "0.9.1"),
        ("  some build 7  ", "some build 7"),
        ("", ""),
    ])
    def test_parse(self, output, expected):
        assert parse_version_output(output) == expected


class TestInstallFailure:
    def test_cache_conflict(self):
        out = "npm ERR! code EACCES\nnpm ERR! syscall mkdir"
        assert classify_install_failure(out) is InstallFailure.CACHE_CONFLICT
        assert classify_install_failure("npm ERR! EEXIST: file already exists") is InstallFailure.CACHE_CONFLICT

    def test_not_empty(self):
        out = "npm ERR! ENOTEMPTY: directory not empty, rename"
        assert classify_install_failure(out) is InstallFailure.NOT_EMPTY

    def test_cache_conflict_wins(self):
        assert classify_install_failure("EEXIST ... ENOTEMPTY") is InstallFailure.CACHE_CONFLICT

    def test_other(self):
        assert classify_install_failure("npm ERR! 404 Not Found") is InstallFailure.OTHER
        assert classify_install_failure("") is InstallFailure.OTHER


class TestUpdateFailure:
    @pytest.mark.parametrize("out", [
        "npm ERR! code EPERM",
        "npm ERR! code EBUSY",
        "ENOTEMPTY: directory not empty",
        "Error: operation not permitted, unlink",
        "resource busy or locked",
    ])
    def test_lock_errors(self, out):
        assert is_lock_error(out)
        assert classify_update_failure(out) is UpdateFailure.FILE_LOCK

    def test_ripgrep_403_is_benign(self):
        out = "postinstall: Downloading ripgrep failed: Request failed with status 403"
        assert is_benign_auxiliary_failure(out)
        assert classify_update_failure(out) is UpdateFailure.BENIGN_AUXILIARY

    def test_403_alone_is_not_benign(self):
        assert not is_benign_auxiliary_failure("npm ERR! 403 Forbidden")
        assert classify_update_failure("npm ERR! 403 Forbidden") is UpdateFailure.OTHER


class TestErrors:
    def test_output_attached(self):
        err = ToolInstallError("Failed to install gemini", tool="gemini", output="npm ERR! boom\n")
        assert "Output: npm ERR! boom" in str(err)
        assert err.tool == "gemini"

    def test_kinds(self):
        assert UnsupportedToolError("x").kind == "unsupported"
        assert NotManagedError("x").kind == "refused"
        assert ToolNotInstalledError("x").kind == "refused"

    def test_integrity_carries_digests(self):
        err = IntegrityError("mismatch", tool="claude", expected="aa", actual="bb")
        assert isinstance(err, ToolInstallError)
        assert (err.expected, err.actual) == ("aa", "bb")
        assert err.kind == "integrity"
