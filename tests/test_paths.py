"""
Tests for path normalization and the compute-node accessibility check.
"""

from pathlib import Path

import pytest

from ospool.paths import (
    DEFAULT_ACCESSIBLE_PREFIXES,
    AccessibilityOracle,
    StagingMap,
    StagingRecord,
    longest_prefix_rewrite,
    normalize_path,
)


def staging_map(entries):
    return StagingMap(StagingRecord(k, v) for k, v in entries.items())


class TestNormalizePath:
    """Test the two-table prefix rewrite."""

    def test_identity_without_tables(self):
        """Paths pass through unchanged when nothing is configured."""
        assert normalize_path("/home/user/data.txt") == "/home/user/data.txt"

    def test_identity_when_no_prefix_matches(self):
        """Paths outside both tables are returned unchanged."""
        staged = staging_map({"/home/user/project": "/staging/work/.staged-project"})
        mappings = {"/mnt/htc-cephfs/fuse/root/staging": "/staging"}

        assert normalize_path("/var/tmp/file", staged, mappings) == "/var/tmp/file"

    def test_staged_directory_rewrite(self):
        """Files inside a staged directory point at the staged copy."""
        staged = staging_map({"/home/user/project": "/staging/work/.staged-project"})

        result = normalize_path("/home/user/project/bin/script.sh", staged)

        assert result == "/staging/work/.staged-project/bin/script.sh"

    def test_user_path_mapping(self):
        """Canonical paths are rewritten to their alias."""
        mappings = {"/mnt/htc-cephfs/fuse/root/staging": "/staging"}

        result = normalize_path("/mnt/htc-cephfs/fuse/root/staging/me/file.txt", None, mappings)

        assert result == "/staging/me/file.txt"

    def test_longest_prefix_wins(self):
        """A longer matching prefix takes precedence over a shorter one."""
        staged = staging_map({"/mnt/a": "/X", "/mnt/a/b": "/Y"})

        assert normalize_path("/mnt/a/b/c", staged) == "/Y/c"
        assert normalize_path("/mnt/a/z", staged) == "/X/z"

    def test_longest_prefix_independent_of_insertion_order(self):
        """Insertion order of the table does not change the result."""
        staged = staging_map({"/mnt/a/b": "/Y", "/mnt/a": "/X"})

        assert normalize_path("/mnt/a/b/c", staged) == "/Y/c"

    def test_staged_entries_shadow_user_mappings(self):
        """When a staged prefix matches, user mappings are never consulted."""
        staged = staging_map({"/home/user/project": "/staging/work/.staged-project"})
        mappings = {"/home/user/project/data": "/elsewhere", "/home": "/other"}

        result = normalize_path("/home/user/project/data/in.csv", staged, mappings)

        assert result == "/staging/work/.staged-project/data/in.csv"

    def test_accepts_path_objects(self):
        """pathlib paths are accepted and a string is returned."""
        mappings = {"/canonical": "/alias"}

        assert normalize_path(Path("/canonical/x"), None, mappings) == "/alias/x"

    def test_longest_prefix_rewrite_no_match(self):
        """No matching key yields None."""
        assert longest_prefix_rewrite("/a/b", {"/c": "/d"}) is None


class TestStagingMap:
    """Test the immutable staging lookup."""

    def test_mapping_interface(self):
        """StagingMap behaves like a read-only dict."""
        staged = staging_map({"/home/u/p": "/w/.staged-p"})

        assert staged["/home/u/p"] == "/w/.staged-p"
        assert len(staged) == 1
        assert dict(staged) == {"/home/u/p": "/w/.staged-p"}
        assert staged.records == [StagingRecord("/home/u/p", "/w/.staged-p")]

    def test_is_read_only(self):
        """Entries cannot be added after construction."""
        staged = StagingMap()

        with pytest.raises(TypeError):
            staged["/x"] = "/y"

    def test_duplicate_original_rejected(self):
        """The same directory cannot be staged twice."""
        with pytest.raises(ValueError, match="staged twice"):
            StagingMap([StagingRecord("/a", "/x"), StagingRecord("/a", "/y")])

    def test_empty_map_is_falsy(self):
        """An empty map behaves as 'nothing staged'."""
        assert not StagingMap()


class TestAccessibilityOracle:
    """Test the accessible-prefix policy."""

    @pytest.mark.parametrize(
        "path",
        ["/staging/user/data", "/cvmfs/oasis.opensciencegrid.org/x", "/mnt/gluster/u/f"],
    )
    def test_default_prefixes_accessible(self, path):
        """Paths under the built-in prefixes are accessible."""
        assert AccessibilityOracle().is_accessible(path)

    @pytest.mark.parametrize("path", ["/home/user/project", "/tmp/x", "/var/lib"])
    def test_other_paths_inaccessible(self, path):
        """Anything else is not accessible."""
        assert not AccessibilityOracle().is_accessible(path)

    def test_extra_prefixes_extend_defaults(self):
        """Configured prefixes are added to, not substituted for, the defaults."""
        oracle = AccessibilityOracle(["/scratch/shared"])

        assert oracle.prefixes[: len(DEFAULT_ACCESSIBLE_PREFIXES)] == DEFAULT_ACCESSIBLE_PREFIXES
        assert oracle.is_accessible("/scratch/shared/run")
        assert oracle.is_accessible("/staging/x")

    def test_relative_path_resolved_against_cwd(self, monkeypatch, tmp_path):
        """Relative paths are judged by their absolute form."""
        monkeypatch.chdir(tmp_path)
        oracle = AccessibilityOracle([str(tmp_path)])

        assert oracle.is_accessible("relative/dir")
