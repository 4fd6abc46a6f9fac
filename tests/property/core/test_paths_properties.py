# tests/property/core/test_paths_properties.py
"""Property-based tests for path sanitization.

These tests verify:
- Paths under a root sanitize to "<root>:<relative>" and resolve back
- Paths outside every root never leak more than two trailing segments
- The longest matching root always wins over its parent
"""

from __future__ import annotations

import posixpath

from hypothesis import given
from hypothesis import strategies as st

from runlens.core.paths import ELLIPSIS, PathRoot, PathSanitizer
from tests.property.settings import STANDARD_SETTINGS

# =============================================================================
# Strategies
# =============================================================================

# Plain path segments; "." and ".." are excluded by the alphabet
segments = st.text(
    min_size=1,
    max_size=12,
    alphabet=st.characters(whitelist_categories=("L", "N"), whitelist_characters="_-"),
)

relative_parts = st.lists(segments, min_size=1, max_size=5)

APP_ROOT = "/srv/app"
VENDOR_ROOT = "/srv/app/vendor"

_SANITIZER = PathSanitizer([PathRoot("app", APP_ROOT), PathRoot("vendor", VENDOR_ROOT)])


# =============================================================================
# Properties
# =============================================================================


class TestSanitizeProperties:
    """Round trips and redaction."""

    @given(parts=relative_parts)
    @STANDARD_SETTINGS
    def test_round_trip_under_root(self, parts: list[str]) -> None:
        """resolve_label(sanitize(p)) == p for any path under a root."""
        path = posixpath.join(APP_ROOT, *parts)

        label = _SANITIZER.sanitize(path)

        assert label is not None
        assert _SANITIZER.resolve_label(label) == path

    @given(parts=relative_parts)
    @STANDARD_SETTINGS
    def test_nested_root_wins(self, parts: list[str]) -> None:
        """A path under vendor/ is labelled by the vendor root."""
        label = _SANITIZER.sanitize(posixpath.join(VENDOR_ROOT, *parts))

        assert label == "vendor:" + "/".join(parts)

    @given(parts=relative_parts)
    @STANDARD_SETTINGS
    def test_outside_roots_is_elided(self, parts: list[str]) -> None:
        """Unrooted paths keep at most their last two segments."""
        path = posixpath.join("/elsewhere", *parts)

        label = _SANITIZER.sanitize(path)

        assert label == f"{ELLIPSIS}/" + "/".join(["elsewhere", *parts][-2:])
        assert _SANITIZER.resolve_label(label) is None
