"""Tests for builds/fingerprint.py module.

Tests fingerprint input normalization and deterministic hashing.
"""

import re

from helpers import make_component
from stackbuild.builds.fingerprint import (
    FINGERPRINT_SCHEMA_VERSION,
    FingerprintInputs,
    compute_digest,
    create_fingerprint_inputs,
    fingerprint,
    normalize_component,
    normalize_sibling,
)
from stackbuild.software.library import Library
from stackbuild.software.models import Project

FINGERPRINT_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.+\-]*-[0-9a-f]{64}$")


def library_of(*components):
    library = Library()
    for component in components:
        library.register(component)
    return library


class TestNormalize:
    """Tests for normalization helpers."""

    def test_normalize_component(self):
        """Should capture the component's own definition."""
        component = make_component(
            "ruby",
            "1.9.3-p481",
            ["zlib"],
            source="https://example.com/ruby.tar.gz",
            checksum="abcd",
            config={"jobs": 4},
        )

        assert normalize_component(component) == {
            "name": "ruby",
            "version": "1.9.3-p481",
            "dependencies": ["zlib"],
            "source": "https://example.com/ruby.tar.gz",
            "checksum": "abcd",
            "config": {"jobs": 4},
            "overrides": {},
        }

    def test_normalize_sibling(self):
        """Should capture name, version and overrides only."""
        component = make_component("zlib", "1.2.8", source="https://example.com/z")

        assert normalize_sibling(component) == {
            "name": "zlib",
            "version": "1.2.8",
            "overrides": {},
        }


class TestCreateFingerprintInputs:
    """Tests for create_fingerprint_inputs function."""

    def test_excludes_self_and_sorts_siblings(self):
        """Should list every other component sorted by name."""
        ruby = make_component("ruby")
        library = library_of(make_component("zlib"), ruby, make_component("curl"))

        inputs = create_fingerprint_inputs(ruby, library)

        assert isinstance(inputs, FingerprintInputs)
        assert inputs.schema_version == FINGERPRINT_SCHEMA_VERSION
        assert inputs.component["name"] == "ruby"
        assert [s["name"] for s in inputs.library] == ["curl", "zlib"]

    def test_to_dict(self):
        """Should convert to a plain dictionary."""
        ruby = make_component("ruby")
        data = create_fingerprint_inputs(ruby, library_of(ruby)).to_dict()

        assert data["schema_version"] == FINGERPRINT_SCHEMA_VERSION
        assert data["library"] == []


class TestFingerprint:
    """Tests for fingerprint function."""

    def test_format(self, chef_server_project):
        """Should be the name followed by a SHA-256 hex digest."""
        library = chef_server_project.library
        for component in library:
            tag = fingerprint(component, library)
            assert FINGERPRINT_PATTERN.match(tag), tag
            assert tag.startswith(f"{component.name}-")

    def test_deterministic(self, chef_server_project):
        """Should produce the same fingerprint on every call."""
        library = chef_server_project.library
        ruby = library.lookup("ruby")

        assert fingerprint(ruby, library) == fingerprint(ruby, library)

    def test_equal_definitions_equal_fingerprints(self):
        """Should depend only on definitions, not object identity."""
        first = library_of(make_component("zlib", "1.2.8"), make_component("ruby"))
        second = library_of(make_component("zlib", "1.2.8"), make_component("ruby"))

        assert fingerprint(first.lookup("ruby"), first) == fingerprint(
            second.lookup("ruby"), second
        )

    def test_registration_order_irrelevant(self):
        """Should not change when siblings are registered in another order."""
        ruby = make_component("ruby")
        zlib = make_component("zlib", "1.2.8")
        curl = make_component("curl", "7.36.0")

        assert fingerprint(ruby, library_of(ruby, zlib, curl)) == fingerprint(
            ruby, library_of(curl, zlib, ruby)
        )

    def test_distinct_components_distinct_fingerprints(self, chef_server_project):
        """Should give every component of a library a distinct fingerprint."""
        library = chef_server_project.library
        tags = {fingerprint(c, library) for c in library}

        assert len(tags) == len(library)

    def test_own_version_changes_fingerprint(self):
        """Should change when the component's version changes."""
        old = make_component("ruby", "1.9.3")
        new = make_component("ruby", "2.1.2")

        assert fingerprint(old, library_of(old)) != fingerprint(new, library_of(new))

    def test_own_config_changes_fingerprint(self):
        """Should change when the component's build configuration changes."""
        plain = make_component("ruby", "1.9.3")
        tuned = make_component("ruby", "1.9.3", config={"jobs": 8})

        assert fingerprint(plain, library_of(plain)) != fingerprint(
            tuned, library_of(tuned)
        )

    def test_sibling_version_changes_fingerprint(self):
        """Should change when any other component's version changes."""
        ruby = make_component("ruby")
        before = library_of(ruby, make_component("unrelated", "1.0"))
        after = library_of(ruby, make_component("unrelated", "2.0"))

        assert fingerprint(ruby, before) != fingerprint(ruby, after)

    def test_added_sibling_changes_fingerprint(self):
        """Should change when a component is added to the library."""
        ruby = make_component("ruby")

        assert fingerprint(ruby, library_of(ruby)) != fingerprint(
            ruby, library_of(ruby, make_component("zlib"))
        )

    def test_sibling_override_changes_fingerprint(self):
        """Should change when a project override applies to a sibling."""
        ruby = make_component("ruby")
        zlib = make_component("zlib", "1.2.8")
        project = Project(
            name="p",
            install_dir="/opt/p",
            overrides={"zlib": {"version": "1.2.8"}},
        )
        overridden = project.apply_overrides(zlib)

        # Same version, but the override itself is recorded
        assert overridden.version == zlib.version
        assert fingerprint(ruby, library_of(ruby, zlib)) != fingerprint(
            ruby, library_of(ruby, overridden)
        )

    def test_sibling_source_ignored(self):
        """Should not change when only a sibling's source URL changes."""
        ruby = make_component("ruby")
        first = library_of(ruby, make_component("zlib", source="https://a/z.tgz"))
        second = library_of(ruby, make_component("zlib", source="https://b/z.tgz"))

        assert fingerprint(ruby, first) == fingerprint(ruby, second)


class TestComputeDigest:
    """Tests for compute_digest function."""

    def test_key_order_irrelevant(self):
        """Should hash dictionaries independently of key order."""
        first = FingerprintInputs(component={"a": 1, "b": 2})
        second = FingerprintInputs(component={"b": 2, "a": 1})

        assert compute_digest(first) == compute_digest(second)

    def test_schema_version_changes_digest(self):
        """Should change when the schema version changes."""
        assert compute_digest(FingerprintInputs(schema_version="1")) != (
            compute_digest(FingerprintInputs(schema_version="2"))
        )
