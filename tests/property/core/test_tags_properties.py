# tests/property/core/test_tags_properties.py
"""Property-based tests for tag narrowing and the well-known tag rules."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from runlens.core.tags import (
    DURABLE_WORKFLOW_TAG_ID,
    LEGACY_DURABLE_WORKFLOW_TAG_ID,
    is_durable_resource,
    is_tunnel_tag,
    normalize_tags,
)
from tests.property.settings import QUICK_SETTINGS, STANDARD_SETTINGS

element_ids = st.text(
    min_size=1,
    max_size=30,
    alphabet=st.characters(whitelist_categories=("L", "N"), whitelist_characters="._-"),
)

tag_ids = st.sampled_from(["app.tags.a", "app.tags.b", "app.tags.c", DURABLE_WORKFLOW_TAG_ID])

tag_refs = st.one_of(
    tag_ids,
    tag_ids.map(lambda tag_id: {"id": tag_id, "config": {"n": 1}}),
    tag_ids.map(lambda tag_id: {"tag": {"id": tag_id}}),
    st.just(""),
    st.just({"config": {}}),
)


class TestNormalizeTagsProperties:
    """Deduplication and order."""

    @given(refs=st.lists(tag_refs, max_size=10))
    @STANDARD_SETTINGS
    def test_first_occurrence_order(self, refs: list[object]) -> None:
        """Ids are unique and ordered by first readable occurrence."""
        usages = normalize_tags(refs)
        ids = [usage.id for usage in usages]

        expected: list[str] = []
        for ref in refs:
            tag_id = ref if isinstance(ref, str) else ref.get("id") or ref.get("tag", {}).get("id")  # type: ignore[attr-defined]
            if tag_id and tag_id not in expected:
                expected.append(tag_id)

        assert ids == expected

    @given(refs=st.lists(tag_refs, max_size=10))
    @STANDARD_SETTINGS
    def test_idempotent(self, refs: list[object]) -> None:
        """Normalizing usages again is a no-op on ids."""
        once = normalize_tags(refs)
        twice = normalize_tags(once)

        assert [usage.id for usage in twice] == [usage.id for usage in once]


class TestDurablePredicateProperties:
    """Durable resource recognition."""

    @given(prefix=element_ids, suffix=element_ids)
    @STANDARD_SETTINGS
    def test_durable_segment_is_durable(self, prefix: str, suffix: str) -> None:
        """Any id containing ".durable" is a durable resource."""
        assert is_durable_resource(f"{prefix}.durable{suffix}")

    @given(resource_id=element_ids.filter(lambda value: ".durable" not in value))
    @STANDARD_SETTINGS
    def test_tags_decide_otherwise(self, resource_id: str) -> None:
        """Without the id segment only a durable tag makes a resource durable."""
        assert not is_durable_resource(resource_id)
        assert is_durable_resource(resource_id, [DURABLE_WORKFLOW_TAG_ID])
        assert is_durable_resource(resource_id, [LEGACY_DURABLE_WORKFLOW_TAG_ID])


class TestTunnelTagProperties:
    """Tunnel tag matching."""

    @given(tag_id=element_ids)
    @QUICK_SETTINGS
    def test_legacy_matching_only_widens(self, tag_id: str) -> None:
        """Anything matched strictly is also matched with legacy matching on."""
        if is_tunnel_tag(tag_id):
            assert is_tunnel_tag(tag_id, legacy_matching=True)

    @given(tag_id=element_ids)
    @QUICK_SETTINGS
    def test_tunnel_policy_never_matches_legacy(self, tag_id: str) -> None:
        """Ids mentioning a tunnel policy are not tunnel tags."""
        assert not is_tunnel_tag(f"{tag_id}.tunnelPolicy", legacy_matching=True)
