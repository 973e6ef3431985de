import struct

import pytest

from builders import compact
from tiles3d.components import ComponentType, DataType
from tiles3d.errors import InvalidJsonError, OutOfBoundsError, TypeMismatchError, UnalignedOffsetError
from tiles3d.pnts import SEMANTICS as PNTS_SEMANTICS
from tiles3d.tables import BinaryProperty, InlineProperty, Table, read_table, write_table


def _region(header, body=b"", offset=28):
    """Tile-shaped buffer with the table starting at ``offset``; JSON padded to 8 bytes."""
    json_bytes = compact(header)
    json_bytes += b" " * ((8 - (offset + len(json_bytes)) % 8) % 8)
    return b"\x00" * offset + json_bytes + body, len(json_bytes), len(body)


class TestReadTable:
    def test_inline_and_binary_properties(self):
        header = {"names": ["a", "b"], "height": {"byteOffset": 0, "componentType": "FLOAT", "type": "SCALAR"}}
        data, json_len, bin_len = _region(header, struct.pack("<2f", 1.5, 2.5))
        table = read_table(data, 28, json_len, bin_len)
        assert isinstance(table.properties["names"], InlineProperty)
        assert isinstance(table.properties["height"], BinaryProperty)
        assert table.get_values("names", 2) == ["a", "b"]
        assert table.get_values("height", 2) == [1.5, 2.5]

    def test_json_padding_stripped(self):
        data, json_len, _ = _region({"BATCH_LENGTH": 0})
        assert read_table(data, 28, json_len, 0).to_json() == {"BATCH_LENGTH": 0}

    def test_empty_region(self):
        table = read_table(b"\x00" * 28, 28, 0, 0)
        assert table.is_empty()

    def test_malformed_json(self):
        data = b"\x00" * 28 + b'{"POINTS_LENGTH": ' + b" " * 6
        with pytest.raises(InvalidJsonError) as excinfo:
            read_table(data, 28, 24, 0)
        assert excinfo.value.offset == 28

    def test_json_must_be_object(self):
        data = b"\x00" * 28 + b"[1,2,3]" + b" "
        with pytest.raises(InvalidJsonError):
            read_table(data, 28, 8, 0)

    def test_body_must_start_on_eight_bytes(self):
        json_bytes = compact({"A": {"byteOffset": 0, "componentType": "FLOAT", "type": "SCALAR"}})
        json_bytes += b" " * ((8 - (28 + len(json_bytes)) % 8) % 8 + 1)
        data = b"\x00" * 28 + json_bytes + b"\x00" * 8
        with pytest.raises(UnalignedOffsetError):
            read_table(data, 28, len(json_bytes), 8)

    def test_byte_offset_not_multiple_of_component_size(self):
        header = {"A": {"byteOffset": 2, "componentType": "FLOAT", "type": "SCALAR"}}
        data, json_len, bin_len = _region(header, b"\x00" * 8)
        with pytest.raises(UnalignedOffsetError) as excinfo:
            read_table(data, 28, json_len, bin_len, kind="batch table")
        assert excinfo.value.path == "batch table.A.byteOffset"

    def test_byte_offset_past_body(self):
        header = {"A": {"byteOffset": 16, "componentType": "FLOAT", "type": "SCALAR"}}
        data, json_len, bin_len = _region(header, b"\x00" * 8)
        with pytest.raises(OutOfBoundsError):
            read_table(data, 28, json_len, bin_len)

    def test_strict_types_require_component_type(self):
        data, json_len, bin_len = _region({"A": {"byteOffset": 0, "type": "SCALAR"}}, b"\x00" * 8)
        with pytest.raises(InvalidJsonError):
            read_table(data, 28, json_len, bin_len, strict_types=True, kind="batch table")

    def test_semantic_component_type_enforced(self):
        header = {"POINTS_LENGTH": 1, "POSITION": {"byteOffset": 0, "componentType": "DOUBLE"}}
        data, json_len, bin_len = _region(header, b"\x00" * 24)
        with pytest.raises(TypeMismatchError):
            read_table(data, 28, json_len, bin_len, semantics=PNTS_SEMANTICS)

    def test_semantic_supplies_implicit_types(self):
        header = {"POINTS_LENGTH": 1, "POSITION": {"byteOffset": 0}}
        data, json_len, bin_len = _region(header, struct.pack("<3f", 1.0, 2.0, 3.0) + b"\x00" * 4)
        table = read_table(data, 28, json_len, bin_len, semantics=PNTS_SEMANTICS)
        assert table.resolve("POSITION", PNTS_SEMANTICS) == (ComponentType.FLOAT, DataType.VEC3)
        assert table.get_values("POSITION", 1, PNTS_SEMANTICS) == [(1.0, 2.0, 3.0)]

    def test_extras_never_treated_as_binary(self):
        data, json_len, _ = _region({"extras": {"byteOffset": 12345}})
        table = read_table(data, 28, json_len, 0)
        assert isinstance(table.properties["extras"], InlineProperty)
        assert table.names() == []


class TestTableValues:
    def test_requested_component_type_must_match(self):
        table = Table()
        table.set_binary("id", [1, 2], ComponentType.UNSIGNED_SHORT, DataType.SCALAR)
        with pytest.raises(TypeMismatchError):
            table.get_values("id", 2, component_type=ComponentType.UNSIGNED_INT)
        assert table.get_values("id", 2, component_type=ComponentType.UNSIGNED_SHORT) == [1, 2]

    def test_absent_property(self):
        assert Table().get_values("missing", 3) is None
        assert Table().get_global("missing") is None

    def test_set_binary_aligns_to_component_width(self):
        table = Table()
        first = table.set_binary("flag", [1], ComponentType.UNSIGNED_BYTE, DataType.SCALAR)
        second = table.set_binary("value", [0.25], ComponentType.DOUBLE, DataType.SCALAR)
        assert first.byte_offset == 0
        assert second.byte_offset == 8
        assert table.get_values("value", 1) == [0.25]

    def test_descriptor_key_order(self):
        prop = BinaryProperty(8, ComponentType.FLOAT, DataType.VEC3, {"note": "x"})
        assert list(prop.to_json()) == ["byteOffset", "componentType", "type", "note"]

    def test_check_ranges(self):
        table = Table()
        table.set_binary("v", [1.0, 2.0], ComponentType.FLOAT, DataType.SCALAR)
        table.check_ranges(2)
        with pytest.raises(OutOfBoundsError):
            table.check_ranges(3, base=100, kind="batch table")


class TestWriteTable:
    def test_empty_table_writes_nothing(self):
        assert write_table(Table(), 28) == (b"", b"")

    @pytest.mark.parametrize("offset", [28, 32, 41])
    def test_json_padded_to_eight_bytes(self, offset):
        table = Table()
        table.set_inline("BATCH_LENGTH", 10)
        json_bytes, body = write_table(table, offset)
        assert (offset + len(json_bytes)) % 8 == 0
        assert json_bytes.rstrip(b" ") == b'{"BATCH_LENGTH":10}'
        assert body == b""

    def test_body_zero_padded(self):
        table = Table()
        table.set_binary("v", [1, 2, 3], ComponentType.UNSIGNED_BYTE, DataType.SCALAR)
        _, body = write_table(table, 28)
        assert body == b"\x01\x02\x03" + b"\x00" * 5
