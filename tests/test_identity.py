"""
Tests for deterministic command ids and source signatures.
"""

import uuid
import pytest
from cadlang import SourceRange
from cadlang.runtime import (
    canonical, command_id, compute_source_signature, verify_source_signature,
    SketchGroup, Segment, number_val,
)


CODE = "const part = extrude(5, sketch)"
RANGE = SourceRange(13, 31)


class TestCommandId:
    """Ids are a pure function of code, range and inputs."""

    def test_stable(self):
        inputs = {"length": 5, "sketch": SketchGroup(id="s", start=(0.0, 0.0))}
        assert command_id(CODE, RANGE, inputs) == command_id(CODE, RANGE, inputs)

    def test_uuid_format(self):
        parsed = uuid.UUID(command_id(CODE, RANGE, {"length": 5}))
        assert parsed.version == 5

    def test_int_and_float_hash_alike(self):
        assert command_id(CODE, RANGE, {"length": 5}) == command_id(CODE, RANGE, {"length": 5.0})

    def test_code_changes_id(self):
        assert command_id(CODE, RANGE, {}) != command_id(CODE + " ", RANGE, {})

    def test_range_changes_id(self):
        assert command_id(CODE, RANGE, {}) != command_id(CODE, SourceRange(13, 30), {})

    def test_inputs_change_id(self):
        assert command_id(CODE, RANGE, {"length": 5}) != command_id(CODE, RANGE, {"length": 6})

    def test_sketch_shape_changes_id(self):
        bare = SketchGroup(id="s", start=(0.0, 0.0))
        longer = SketchGroup(
            id="s", start=(0.0, 0.0),
            segments=(Segment(from_=(0.0, 0.0), to=(4.0, 0.0)),),
        )
        assert command_id(CODE, RANGE, {"sketch": bare}) != command_id(CODE, RANGE, {"sketch": longer})

    def test_key_order_irrelevant(self):
        a = command_id(CODE, RANGE, {"to": [1, 2], "tag": None})
        b = command_id(CODE, RANGE, {"tag": None, "to": [1, 2]})
        assert a == b


class TestCanonical:
    """Only types with an explicit layout can be hashed."""

    def test_plain_data(self):
        assert canonical({"a": [1, (2, 3)], "b": "x", "c": None, "d": True}) == {
            "a": [1.0, [2.0, 3.0]], "b": "x", "c": None, "d": True,
        }

    def test_value(self):
        assert canonical(number_val(2)) == {"kind": "number", "data": 2.0}

    def test_segment(self):
        seg = Segment(from_=(0.0, 0.0), to=(1.0, 2.0), name="edge")
        assert canonical(seg) == {"from": [0.0, 0.0], "to": [1.0, 2.0], "name": "edge"}

    def test_unknown_type(self):
        with pytest.raises(TypeError):
            canonical(object())

    def test_non_string_key(self):
        with pytest.raises(TypeError):
            canonical({1: "x"})


class TestSourceSignature:

    def test_line_endings_normalized(self):
        assert compute_source_signature("a\r\nb\n") == compute_source_signature("a\nb")

    def test_verify(self):
        signature = compute_source_signature(CODE)
        assert signature.startswith("sha256:")
        assert verify_source_signature(CODE, signature)
        assert not verify_source_signature(CODE + "\nshow(part)", signature)
