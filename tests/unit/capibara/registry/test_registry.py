"""Tests for capability record models, store and YAML loader."""

from __future__ import annotations

import textwrap
import threading
from pathlib import Path

import pytest
from pydantic import ValidationError

from capibara.errors import DuplicateNameError
from capibara.graph.builder import build
from capibara.negotiation.negotiator import CapabilityNegotiator
from capibara.registry.loader import RegistryLoader
from capibara.registry.schema import CapabilityRecord, RegistryDocument, is_valid_name
from capibara.registry.store import CapabilityRecordStore
from capibara.types import CapabilityStatus, ViolationKind


# ---------------------------------------------------------------------------
# Schema tests
# ---------------------------------------------------------------------------


class TestSchema:
    def test_minimal_record(self):
        r = CapabilityRecord(name="feed.page.v1")
        assert r.replaces is None
        assert r.is_root is True
        assert r.status == CapabilityStatus.ACTIVE
        assert r.introduced_in == "0.0.0"

    def test_alias_introduced_in(self):
        r = CapabilityRecord.model_validate({"name": "a.v1", "introducedIn": "2.3.4"})
        assert r.introduced_in == "2.3.4"

    def test_field_name_introduced_in(self):
        r = CapabilityRecord(name="a.v1", introduced_in="1.0.0-beta.1")
        assert r.introduced_in == "1.0.0-beta.1"

    def test_bad_semver_rejected(self):
        with pytest.raises(ValidationError):
            CapabilityRecord(name="a.v1", introduced_in="one")

    @pytest.mark.parametrize("name", ["", "feed..v1", ".feed", "feed.", "feed v1", "a,b", "a\x00b"])
    def test_malformed_names_rejected(self, name):
        with pytest.raises(ValidationError):
            CapabilityRecord(name=name)

    def test_malformed_replaces_rejected(self):
        with pytest.raises(ValidationError):
            CapabilityRecord(name="a.v2", replaces="a v1")

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            CapabilityRecord(name="a.v1", bogus="z")

    def test_record_is_frozen(self):
        r = CapabilityRecord(name="a.v1")
        with pytest.raises(ValidationError):
            r.name = "b.v1"

    def test_deprecated_status(self):
        r = CapabilityRecord(name="a.v1", status="deprecated")
        assert r.status == CapabilityStatus.DEPRECATED

    def test_to_export(self):
        r = CapabilityRecord(name="a.v2", owner="team", introduced_in="1.2.0", replaces="a.v1")
        assert r.to_export() == {
            "name": "a.v2",
            "introducedIn": "1.2.0",
            "replaces": "a.v1",
            "status": "active",
            "owner": "team",
        }

    def test_wrong_contract_type_rejected(self):
        with pytest.raises(ValidationError):
            RegistryDocument(schema_version="0.1.0", contract_type="wrong")

    def test_is_valid_name(self):
        assert is_valid_name("feed.pagination.cursor.v2")
        assert is_valid_name("Feed_x-1")
        assert not is_valid_name("feed,v2")
        assert not is_valid_name(42)


# ---------------------------------------------------------------------------
# Store tests
# ---------------------------------------------------------------------------


class TestStore:
    def test_register_and_get(self):
        store = CapabilityRecordStore()
        record = CapabilityRecord(name="feed.page.v1")
        store.register(record)
        assert store.get("feed.page.v1") is record
        assert "feed.page.v1" in store
        assert len(store) == 1

    def test_get_missing(self):
        assert CapabilityRecordStore().get("nope") is None

    def test_duplicate_register_rejected(self):
        store = CapabilityRecordStore()
        store.register(CapabilityRecord(name="a.v1", owner="x"))
        with pytest.raises(DuplicateNameError) as excinfo:
            store.register(CapabilityRecord(name="a.v1", owner="y"))
        assert excinfo.value.names == ["a.v1"]
        assert excinfo.value.kind == ViolationKind.DUPLICATE_NAME
        # Original record untouched
        assert store.get("a.v1").owner == "x"

    def test_get_all_sorted_by_name(self):
        store = CapabilityRecordStore()
        for name in ["b.v1", "a.v2", "B.v1", "a.v1"]:
            store.register(CapabilityRecord(name=name))
        # Byte-wise: uppercase sorts before lowercase
        assert [r.name for r in store.get_all()] == ["B.v1", "a.v1", "a.v2", "b.v1"]

    def test_register_all_is_atomic(self):
        store = CapabilityRecordStore([CapabilityRecord(name="a.v1")])
        with pytest.raises(DuplicateNameError) as excinfo:
            store.register_all(
                [
                    CapabilityRecord(name="b.v1"),
                    CapabilityRecord(name="a.v1"),
                    CapabilityRecord(name="c.v1"),
                    CapabilityRecord(name="c.v1"),
                ]
            )
        assert excinfo.value.names == ["a.v1", "c.v1"]
        assert len(store) == 1
        assert "b.v1" not in store

    def test_snapshot_is_immutable_copy(self):
        store = CapabilityRecordStore([CapabilityRecord(name="a.v1")])
        snap = store.snapshot()
        store.register(CapabilityRecord(name="b.v1"))
        assert [r.name for r in snap] == ["a.v1"]
        assert isinstance(snap, tuple)

    def test_no_removal_api(self):
        store = CapabilityRecordStore()
        assert not hasattr(store, "remove")
        assert not hasattr(store, "rename")

    def test_concurrent_registration_single_winner(self):
        store = CapabilityRecordStore()
        errors: list[Exception] = []

        def worker():
            try:
                store.register(CapabilityRecord(name="race.v1"))
            except DuplicateNameError as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 1
        assert len(errors) == 7


# ---------------------------------------------------------------------------
# Loader tests
# ---------------------------------------------------------------------------


MINIMAL_YAML = textwrap.dedent("""\
    schema_version: "0.1.0"
    capabilities:
      - name: feed.page.v1
""")


class TestLoader:
    def test_load_from_string(self):
        doc = RegistryLoader().load_from_string(MINIMAL_YAML)
        assert doc.contract_type == "capability_registry"
        assert [r.name for r in doc.capabilities] == ["feed.page.v1"]

    def test_load_from_file(self, registry_file: Path):
        doc = RegistryLoader().load(registry_file)
        assert len(doc.capabilities) == 2
        assert doc.capabilities[1].replaces == "feed.page.v1"
        assert doc.capabilities[1].introduced_in == "1.4.0"

    def test_caching(self, registry_file: Path):
        loader = RegistryLoader()
        assert loader.load(registry_file) is loader.load(registry_file)

    def test_edited_file_is_reloaded(self, tmp_path: Path, feed_graph):
        f = tmp_path / "caps.yaml"
        f.write_text("capabilities:\n  - name: feed.page.v1\n")
        loader = RegistryLoader()
        negotiator = CapabilityNegotiator(build(loader.load_store(f).get_all()))
        assert "feed.cursor.v2" not in negotiator.graph

        f.write_text(
            "capabilities:\n"
            "  - name: feed.page.v1\n"
            "  - name: feed.cursor.v2\n"
            "    replaces: feed.page.v1\n"
        )
        negotiator.reload(loader.load_store(f).get_all())
        assert "feed.cursor.v2" in negotiator.graph
        assert negotiator.get_capability_hash() == feed_graph.fingerprint().encode()

    def test_string_load_not_cached(self):
        loader = RegistryLoader()
        assert loader.load_from_string(MINIMAL_YAML) is not loader.load_from_string(MINIMAL_YAML)

    def test_accepts_str_path(self, registry_file: Path):
        assert len(RegistryLoader().load(str(registry_file)).capabilities) == 2

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            RegistryLoader().load(Path("/nonexistent/capabilities.yaml"))

    def test_non_mapping_root_rejected(self):
        with pytest.raises(TypeError):
            RegistryLoader().load_from_string("- just\n- a list\n")

    def test_load_store(self, registry_file: Path):
        store = RegistryLoader().load_store(registry_file)
        assert [r.name for r in store.get_all()] == ["feed.cursor.v2", "feed.page.v1"]

    def test_load_store_duplicate_names(self, tmp_path: Path):
        f = tmp_path / "dup.yaml"
        f.write_text(
            textwrap.dedent("""\
                schema_version: "0.1.0"
                capabilities:
                  - name: a.v1
                  - name: a.v1
            """)
        )
        with pytest.raises(DuplicateNameError):
            RegistryLoader().load_store(f)
