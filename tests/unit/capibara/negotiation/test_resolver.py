"""Tests for resolving advertised capability sets against a local graph."""

from __future__ import annotations

import pytest

from capibara.errors import NegotiationDecodeError
from capibara.fingerprint import CapabilitySet, fingerprint
from capibara.graph.model import CapabilityGraph
from capibara.negotiation.resolver import IncomingCapabilities, resolve
from capibara.types import ResolutionSource


class TestEffectiveSet:
    def test_intersection_with_local_names(self, feed_graph: CapabilityGraph):
        r = resolve({"feed.cursor.v2", "chat.v9"}, feed_graph)
        assert r.effective == {"feed.cursor.v2"}
        assert r.ignored == {"chat.v9"}
        assert r.source == ResolutionSource.EXPLICIT

    def test_has_capability(self, feed_graph: CapabilityGraph):
        r = resolve(["feed.cursor.v2"], feed_graph)
        assert r.has_capability("feed.cursor.v2") is True
        assert r.has_capability("feed.page.v1") is False
        assert r.has_capability("unknown.v1") is False

    def test_result_is_immutable(self, feed_graph: CapabilityGraph):
        r = resolve(["feed.cursor.v2"], feed_graph)
        with pytest.raises(AttributeError):
            r.effective = CapabilitySet()  # type: ignore[misc]
        with pytest.raises(TypeError):
            r._selections["feed.page.v1"] = None  # type: ignore[index]

    def test_effective_fingerprint(self, feed_graph: CapabilityGraph):
        r = resolve(["feed.cursor.v2", "chat.v9"], feed_graph)
        assert r.effective_fingerprint == fingerprint(["feed.cursor.v2"])


class TestVersionSelection:
    def test_most_derived_present_member(self, three_step_graph: CapabilityGraph):
        r = resolve({"search.v1", "search.v3"}, three_step_graph)
        assert r.selected_version("search.v1") == "search.v3"

    def test_selection_by_any_lineage_member(self, three_step_graph: CapabilityGraph):
        r = resolve({"search.v2"}, three_step_graph)
        for name in ("search.v1", "search.v2", "search.v3"):
            assert r.selected_version(name) == "search.v2"

    def test_only_root_present(self, three_step_graph: CapabilityGraph):
        r = resolve({"search.v1"}, three_step_graph)
        assert r.selected_version("search.v3") == "search.v1"
        assert r.is_baseline("search.v1") is False

    def test_baseline_when_lineage_absent(self, three_step_graph: CapabilityGraph):
        r = resolve({"profile.avatar.v1"}, three_step_graph)
        assert r.selected_version("search.v1") is None
        assert r.is_baseline("search.v2") is True
        assert r.selected_version("profile.avatar.v1") == "profile.avatar.v1"

    def test_unknown_feature_is_baseline(self, three_step_graph: CapabilityGraph):
        r = resolve({"search.v3"}, three_step_graph)
        assert r.selected_version("nope.v1") is None

    def test_selections_keyed_by_root(self, three_step_graph: CapabilityGraph):
        r = resolve({"search.v2"}, three_step_graph)
        assert r.selections() == {"profile.avatar.v1": None, "search.v1": "search.v2"}


class TestAbsenceAndForwardCompatibility:
    def test_none_resolves_to_baseline(self, three_step_graph: CapabilityGraph):
        r = resolve(None, three_step_graph)
        assert r.source == ResolutionSource.ABSENT
        assert r.effective == set()
        assert all(v is None for v in r.selections().values())
        assert r.has_capability("search.v1") is False

    def test_empty_set_resolves_to_baseline(self, three_step_graph: CapabilityGraph):
        r = resolve(set(), three_step_graph)
        assert all(v is None for v in r.selections().values())

    def test_wholly_unknown_set_is_valid(self, feed_graph: CapabilityGraph):
        r = resolve({"x.v1", "y.v2"}, feed_graph)
        assert r.effective == set()
        assert r.ignored == {"x.v1", "y.v2"}

    def test_unknown_name_does_not_affect_known(self, three_step_graph: CapabilityGraph):
        with_unknown = resolve({"search.v2", "search.v4"}, three_step_graph)
        without = resolve({"search.v2"}, three_step_graph)
        assert with_unknown.selections() == without.selections()
        assert with_unknown.effective == without.effective


class TestMalformedInput:
    def test_bare_string_rejected(self, feed_graph: CapabilityGraph):
        with pytest.raises(NegotiationDecodeError):
            resolve("feed.cursor.v2", feed_graph)  # type: ignore[arg-type]

    def test_non_iterable_rejected(self, feed_graph: CapabilityGraph):
        with pytest.raises(NegotiationDecodeError):
            resolve(42, feed_graph)  # type: ignore[arg-type]

    def test_non_string_member_rejected(self, feed_graph: CapabilityGraph):
        with pytest.raises(NegotiationDecodeError):
            resolve(["feed.cursor.v2", 7], feed_graph)  # type: ignore[list-item]

    def test_malformed_name_rejected(self, feed_graph: CapabilityGraph):
        with pytest.raises(NegotiationDecodeError):
            resolve(["feed cursor"], feed_graph)

    def test_fingerprint_mismatch_rejected(self, feed_graph: CapabilityGraph):
        incoming = IncomingCapabilities(
            names=CapabilitySet(["feed.cursor.v2"]),
            fingerprint=fingerprint(["feed.page.v1"]),
        )
        with pytest.raises(NegotiationDecodeError, match="does not match"):
            resolve(incoming, feed_graph)

    def test_decoded_set_with_separator_in_name_rejected(self, feed_graph: CapabilityGraph):
        incoming = IncomingCapabilities(
            names=CapabilitySet(["feed.page.v1\x00feed.cursor.v2"]),
            fingerprint=fingerprint(["feed.page.v1", "feed.cursor.v2"]),
        )
        with pytest.raises(NegotiationDecodeError, match="Malformed"):
            resolve(incoming, feed_graph)

    def test_fingerprint_match_accepted(self, feed_graph: CapabilityGraph):
        names = CapabilitySet(["feed.cursor.v2"])
        r = resolve(IncomingCapabilities(names=names, fingerprint=names.fingerprint()), feed_graph)
        assert r.source == ResolutionSource.HEADER
        assert r.fingerprint == names.fingerprint()


class TestEndToEnd:
    def test_client_with_cursor(self, feed_graph: CapabilityGraph):
        r = resolve({"feed.cursor.v2"}, feed_graph)
        assert r.has_capability("feed.cursor.v2") is True
        assert r.selected_version("feed.page.v1") == "feed.cursor.v2"

    def test_client_without_negotiation(self, feed_graph: CapabilityGraph):
        r = resolve(None, feed_graph)
        assert r.has_capability("feed.cursor.v2") is False
        assert r.is_baseline("feed.page.v1") is True
