import logging
import random

import numpy as np

from sprite_rig.atlas_generator import PackPosition, PackResult, build_atlas, pack_atlas
from sprite_rig.compositor import FrameImage
from sprite_rig.geometry import BoundingBox

from helpers import rects_overlap, solid


def test_single_image_fits_initial_size():
    result = pack_atlas([(10, 20)], border=1)

    assert result.size == 128
    assert result.positions == [PackPosition(0, 0)]


def test_shelf_wraps_to_new_row():
    result = pack_atlas([(60, 10), (60, 30), (60, 5)], border=2)

    assert result.positions == [PackPosition(0, 0), PackPosition(62, 0), PackPosition(0, 32)]


def test_atlas_doubles_until_everything_fits():
    result = pack_atlas([(100, 100)] * 4, border=1)

    assert result.size == 256
    result = pack_atlas([(200, 10)], border=0)
    assert result.size == 256


def test_empty_images_take_no_space():
    result = pack_atlas([(0, 0), (10, 10), (0, 0), (10, 10)], border=0)

    assert result.positions == [PackPosition(0, 0), PackPosition(0, 0), PackPosition(0, 0), PackPosition(10, 0)]


def test_large_atlas_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="sprite_rig.atlas_generator"):
        result = pack_atlas([(3000, 10)], border=0)

    assert result.size == 4096
    assert "larger than 2048" in caplog.text


def test_packing_is_valid_for_many_sizes():
    rng = random.Random(7)
    sizes = [(rng.randint(1, 90), rng.randint(1, 90)) for _ in range(60)]
    result = pack_atlas(sizes, border=1)

    assert result.size >= 128
    assert result.size & (result.size - 1) == 0
    rects = [(p.x, p.y, w, h) for p, (w, h) in zip(result.positions, sizes)]
    for x, y, w, h in rects:
        assert 0 <= x and x + w <= result.size
        assert 0 <= y and y + h <= result.size
    for i, a in enumerate(rects):
        for b in rects[i + 1:]:
            assert not rects_overlap(a, b)


def test_packing_is_deterministic():
    sizes = [(17, 5), (40, 40), (3, 90), (64, 12)] * 5
    assert pack_atlas(sizes, 1) == pack_atlas(sizes, 1)


def test_build_atlas_places_rows_from_the_bottom():
    pixels = solid(2, 3, (1.0, 0.0, 0.0, 1.0))
    pixels[0] = (0.0, 1.0, 0.0, 1.0)  # top row green
    image = FrameImage(8, 8, pixels, BoundingBox(0, 0, 1, 2), has_content=True)
    atlas = build_atlas([image], PackResult(size=128, positions=[PackPosition(4, 0)]))

    arr = np.asarray(atlas)
    assert atlas.size == (128, 128) and atlas.mode == "RGBA"
    assert tuple(arr[127, 4]) == (255, 0, 0, 255)
    assert tuple(arr[125, 5]) == (0, 255, 0, 255)
    assert tuple(arr[124, 4]) == (0, 0, 0, 0)
