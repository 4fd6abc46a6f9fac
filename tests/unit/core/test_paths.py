# tests/unit/core/test_paths.py
"""Tests for source path redaction.

Tests cover:
- Root-relative labels and the root itself
- Longest-root-first matching for nested roots
- Elision of paths outside every root
- Root deduplication by name and settings-driven construction
- Label resolution back to absolute paths
"""

from runlens.core.config import PathRootSettings, PathSettings
from runlens.core.paths import PathRoot, PathSanitizer


class TestSanitize:
    """PathSanitizer.sanitize()."""

    def test_path_under_root(self) -> None:
        """A path inside a root becomes "<root>:<relative>"."""
        sanitizer = PathSanitizer([PathRoot("workspace", "/repo")])

        assert sanitizer.sanitize("/repo/src/foo.ts") == "workspace:src/foo.ts"

    def test_unrelated_path_is_elided(self) -> None:
        """Only the last two segments of an unmatched path are shown."""
        sanitizer = PathSanitizer([PathRoot("workspace", "/repo")])

        assert sanitizer.sanitize("/var/lib/other/deep/file.txt") == "…/deep/file.txt"

    def test_root_itself(self) -> None:
        """The root directory maps to "<root>:."."""
        sanitizer = PathSanitizer([PathRoot("workspace", "/repo")])

        assert sanitizer.sanitize("/repo") == "workspace:."

    def test_sibling_with_common_prefix_is_not_inside(self) -> None:
        """"/repo2" shares a string prefix with "/repo" but is not under it."""
        sanitizer = PathSanitizer([PathRoot("workspace", "/repo")])

        assert sanitizer.sanitize("/repo2/x.py") == "…/repo2/x.py"

    def test_nested_root_wins(self) -> None:
        """The most specific (longest) root is matched first."""
        sanitizer = PathSanitizer([PathRoot("workspace", "/repo"), PathRoot("vendor", "/repo/vendor")])

        assert sanitizer.sanitize("/repo/vendor/lib/x.py") == "vendor:lib/x.py"
        assert sanitizer.sanitize("/repo/src/x.py") == "workspace:src/x.py"

    def test_non_string_and_empty_inputs(self) -> None:
        """Anything but a non-empty string yields None."""
        sanitizer = PathSanitizer([PathRoot("workspace", "/repo")])

        assert sanitizer.sanitize(None) is None
        assert sanitizer.sanitize("") is None
        assert sanitizer.sanitize(42) is None

    def test_path_is_normalized_first(self) -> None:
        """Dot segments are collapsed before matching."""
        sanitizer = PathSanitizer([PathRoot("workspace", "/repo")])

        assert sanitizer.sanitize("/repo/src/../lib/./a.py") == "workspace:lib/a.py"


class TestRoots:
    """Root ordering and construction."""

    def test_last_root_with_a_name_wins(self) -> None:
        """Redefining a root name replaces its path."""
        sanitizer = PathSanitizer([PathRoot("workspace", "/a"), PathRoot("workspace", "/b")])

        assert sanitizer.roots == (PathRoot("workspace", "/b"),)

    def test_default_roots(self) -> None:
        """Built-in roots are workspace, site-packages and home."""
        sanitizer = PathSanitizer.default(cwd="/repo", home="/home/dev")

        assert {root.name for root in sanitizer.roots} == {"workspace", "site-packages", "home"}
        assert sanitizer.sanitize("/home/dev/notes/a.txt") == "home:notes/a.txt"

    def test_from_settings_without_defaults(self) -> None:
        """Operator roots alone are used when defaults are disabled."""
        settings = PathSettings(include_defaults=False, roots=(PathRootSettings(name="vendor", path="/opt/vendor"),))

        sanitizer = PathSanitizer.from_settings(settings)

        assert sanitizer.roots == (PathRoot("vendor", "/opt/vendor"),)

    def test_operator_root_overrides_builtin(self) -> None:
        """An operator root reusing a built-in name points it elsewhere."""
        settings = PathSettings(roots=(PathRootSettings(name="workspace", path="/srv/app"),))

        sanitizer = PathSanitizer.from_settings(settings, cwd="/repo", home="/home/dev")

        assert sanitizer.sanitize("/srv/app/main.py") == "workspace:main.py"
        assert sanitizer.sanitize("/repo/main.py") == "…/repo/main.py"


class TestResolveLabel:
    """PathSanitizer.resolve_label()."""

    def test_round_trip(self) -> None:
        """A sanitized label resolves back to the absolute path."""
        sanitizer = PathSanitizer([PathRoot("workspace", "/repo")])

        assert sanitizer.resolve_label("workspace:src/foo.ts") == "/repo/src/foo.ts"
        assert sanitizer.resolve_label("workspace:.") == "/repo"

    def test_elided_and_unknown_labels(self) -> None:
        """Elided paths and unknown roots cannot be resolved."""
        sanitizer = PathSanitizer([PathRoot("workspace", "/repo")])

        assert sanitizer.resolve_label("…/deep/file.txt") is None
        assert sanitizer.resolve_label("vendor:x.py") is None
        assert sanitizer.resolve_label(None) is None
