import pytest

from builders import scale, translation
from tiles3d.bounding_volume import Box, Region, Sphere, decode_bounding_volume, encode_bounding_volume
from tiles3d.errors import InvalidBoundingVolumeError, InvalidJsonError
from tiles3d.matrix import mat4_multiply

BOX = [0, 0, 10, 100, 0, 0, 0, 100, 0, 0, 0, 10]


class TestDecode:
    def test_box(self):
        volume = decode_bounding_volume({"box": BOX})
        assert isinstance(volume, Box)
        assert volume.center == (0, 0, 10)
        assert volume.z_axis == (0, 0, 10)

    def test_region(self):
        volume = decode_bounding_volume({"region": [-1.3, 0.6, -1.2, 0.7, 0.0, 20.0]})
        assert isinstance(volume, Region)
        assert (volume.west, volume.max_height) == (-1.3, 20.0)

    def test_antimeridian_region_accepted(self):
        volume = decode_bounding_volume({"region": [3.1, -0.1, -3.1, 0.1, 0, 1]})
        assert volume.west > volume.east

    def test_sphere(self):
        volume = decode_bounding_volume({"sphere": [1, 2, 3, 4.5]})
        assert volume == Sphere((1, 2, 3), 4.5)

    def test_extensions_kept(self):
        value = {"sphere": [0, 0, 0, 1], "extensions": {"VENDOR_volume": {"a": 1}}}
        volume = decode_bounding_volume(value)
        assert encode_bounding_volume(volume) == value

    @pytest.mark.parametrize("value", [{}, {"extras": {}}, {"cylinder": [1, 2, 3]}])
    def test_no_shape(self, value):
        with pytest.raises(InvalidBoundingVolumeError):
            decode_bounding_volume(value)

    def test_two_shapes_is_ambiguous(self):
        with pytest.raises(InvalidBoundingVolumeError, match="ambiguous"):
            decode_bounding_volume({"sphere": [0, 0, 0, 1], "region": [0, 0, 1, 1, 0, 1]})

    @pytest.mark.parametrize(
        "value",
        [{"box": BOX[:11]}, {"region": [0, 0, 1, 1, 0]}, {"sphere": [0, 0, 0, 1, 2]}, {"box": "nope"}],
    )
    def test_wrong_length(self, value):
        with pytest.raises(InvalidBoundingVolumeError) as excinfo:
            decode_bounding_volume(value, "root.boundingVolume")
        assert excinfo.value.path.startswith("root.boundingVolume.")

    def test_non_numeric_member(self):
        with pytest.raises(InvalidJsonError) as excinfo:
            decode_bounding_volume({"sphere": [0, 0, "0", 1]})
        assert excinfo.value.path == "boundingVolume.sphere[2]"

    def test_not_an_object(self):
        with pytest.raises(InvalidJsonError):
            decode_bounding_volume([0, 0, 0, 1])


class TestTransform:
    def test_box_translated(self):
        box = Box.from_values(BOX)
        moved = box.transform(translation(5.0, 0.0, 0.0))
        assert moved.center == (5.0, 0.0, 10.0)
        assert moved.x_axis == box.x_axis

    def test_box_scaled(self):
        scaled = Box.from_values(BOX).transform(scale(2.0, 2.0, 2.0))
        assert scaled.center == (0.0, 0.0, 20.0)
        assert scaled.x_axis == (200.0, 0.0, 0.0)

    def test_sphere_radius_uses_largest_scale(self):
        matrix = mat4_multiply(translation(1.0, 1.0, 1.0), scale(1.0, 3.0, 2.0))
        sphere = Sphere((0.0, 0.0, 0.0), 2.0).transform(matrix)
        assert sphere.center == (1.0, 1.0, 1.0)
        assert sphere.radius == pytest.approx(6.0)

    def test_region_unchanged(self):
        region = Region.from_values([0, 0, 1, 1, 0, 10])
        assert region.transform(scale(2.0, 2.0, 2.0)) is region


class TestValueSemantics:
    def test_hashable_with_extensions(self):
        first = decode_bounding_volume({"sphere": [0, 0, 0, 1], "extras": {"id": 1}})
        second = decode_bounding_volume({"sphere": [0, 0, 0, 1], "extras": {"id": 1}})
        assert hash(first) == hash(second)
        assert len({first, second}) == 1

    def test_extra_takes_part_in_equality(self):
        plain = decode_bounding_volume({"box": BOX})
        tagged = decode_bounding_volume({"box": BOX, "extras": {"id": 1}})
        assert plain != tagged
        assert hash(Box.from_values(BOX)) == hash(plain)
        assert hash(Region.from_values([0, 0, 1, 1, 0, 10])) == hash(Region.from_values([0, 0, 1, 1, 0, 10]))
