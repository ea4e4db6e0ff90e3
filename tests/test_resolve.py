"""
Unit tests for reference resolution.
"""

import pytest

from infx.errors import DanglingReference, MalformedObject
from infx.objects.resolve import ReferenceResolver, resolve_references
from infx.objects.typed import Reference, TypedObject, coerce


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def response():
    """Two datasets of one experiment, the second referring back by id."""
    return coerce([
        {
            "@type": "DataSet",
            "@id": 1,
            "code": "20120427105200373-4",
            "experiment": {
                "@type": "Experiment",
                "@id": 2,
                "code": "ADENO-TEAM",
                "project": {"@type": "Project", "@id": 3, "code": "ADENO"},
            },
        },
        {
            "@type": "DataSet",
            "@id": 4,
            "code": "20120427105206744-5",
            "experiment": 2,
        },
    ])


# =============================================================================
# Test resolution
# =============================================================================

class TestResolution:
    """Tests for replacing bare references by their definitions."""

    def test_definition_site_roundtrip(self, response):
        resolved = resolve_references(response)

        assert resolved[1]["experiment"] == resolved[0]["experiment"]
        assert resolved[1]["experiment"]["project"]["code"] == "ADENO"

    def test_resolved_objects_are_copies(self, response):
        resolved = resolve_references(response)

        assert resolved[1]["experiment"] is not resolved[0]["experiment"]
        assert isinstance(resolved[1]["experiment"], TypedObject)

    def test_input_untouched(self, response):
        resolve_references(response)

        assert response[1]["experiment"] == 2

    def test_stub_reference(self):
        data = coerce([
            {"@type": "Experiment", "@id": 7, "code": "A"},
            {"@type": "DataSet", "code": "X", "experiment": {"@id": 7}},
        ])
        resolved = resolve_references(data)

        assert resolved[1]["experiment"]["code"] == "A"

    def test_root_level_reference(self):
        data = coerce([
            {"@type": "Sample", "@id": 1, "code": "KB2-03-1I"},
            1,
        ])
        resolved = resolve_references(data)

        assert resolved[1] == resolved[0]

    def test_references_in_lists(self):
        data = coerce([
            {"@type": "Sample", "@id": 1, "code": "A"},
            {"@type": "Sample", "@id": 2, "code": "B", "parents": [1]},
        ])
        resolved = resolve_references(data)

        assert resolved[1]["parents"][0]["code"] == "A"

    def test_learned_reference_field(self):
        data = coerce([
            {"@type": "Well", "@id": 1, "plate": {"@type": "Plate", "@id": 2, "code": "P"}},
            {"@type": "Well", "@id": 3, "plate": 2},
        ])
        resolved = resolve_references(data)

        assert resolved[1]["plate"]["code"] == "P"

    def test_plain_integers_untouched(self):
        data = coerce([
            {"@type": "Sample", "@id": 1, "code": "A"},
            {"@type": "WellPosition", "wellRow": 1, "wellColumn": 2},
        ])
        resolved = resolve_references(data)

        assert resolved[1]["wellRow"] == 1
        assert resolved[1]["wellColumn"] == 2

    def test_plain_strings_untouched(self):
        data = coerce({"@type": "DataSet", "code": "A", "type": "HCS_IMAGE"})

        assert resolve_references(data)["type"] == "HCS_IMAGE"

    def test_scalar_payload(self):
        assert resolve_references(3) == 3
        assert resolve_references("token") == "token"

    def test_idempotent(self, response):
        once = resolve_references(response)
        twice = resolve_references(once)

        assert twice == once


# =============================================================================
# Test unresolvable references
# =============================================================================

class TestUnresolvable:
    """Tests for dangling and cyclic references."""

    def test_dangling_reference(self):
        data = coerce({"@type": "DataSet", "code": "A", "experiment": 99})
        resolved = resolve_references(data)

        assert resolved["experiment"] == Reference(99)

    def test_dangling_reference_strict(self):
        data = coerce({"@type": "DataSet", "code": "A", "experiment": 99})

        with pytest.raises(DanglingReference) as exc_info:
            resolve_references(data, strict=True)
        assert exc_info.value.reference_id == 99
        assert exc_info.value.field == "experiment"

    def test_dangling_idempotent(self):
        data = coerce({"@type": "DataSet", "code": "A", "experiment": 99})
        once = resolve_references(data)

        assert resolve_references(once) == once

    def test_cycle_terminates(self):
        data = coerce({
            "@type": "Sample",
            "@id": 1,
            "code": "A",
            "children": [{"@type": "Sample", "@id": 2, "code": "B", "parents": [1]}],
        })
        resolved = resolve_references(data)

        assert resolved["children"][0]["parents"] == [Reference(1)]

    def test_tables_scoped_per_response(self, response):
        resolver = ReferenceResolver()
        resolver.resolve(response)
        other = resolver.resolve(coerce({"@type": "DataSet", "code": "B", "experiment": 2}))

        assert other["experiment"] == Reference(2)

    @pytest.mark.parametrize("identity", [[1], {"n": 1}])
    def test_non_scalar_identity_rejected(self, identity):
        data = coerce([
            {"@type": "Sample", "@id": 1, "code": "A"},
            {"@type": "Sample", "@id": identity, "code": "B"},
        ])

        with pytest.raises(MalformedObject):
            resolve_references(data)
