import random

import pytest

from orbfeatures.keypoint import KeyPoint
from orbfeatures.octree import ExtractorNode, distribute_oct_tree


def _node(keys, width=100, height=100):
    return ExtractorNode(ul=(0, 0), ur=(width, 0), bl=(0, height), br=(width, height), keys=list(keys))


def test_divide_assigns_quadrants():
    keys = [KeyPoint(10, 10), KeyPoint(60, 10), KeyPoint(10, 60), KeyPoint(60, 60), KeyPoint(70, 80)]
    n1, n2, n3, n4 = _node(keys).divide()
    assert n1.keys == [keys[0]]
    assert n2.keys == [keys[1]]
    assert n3.keys == [keys[2]]
    assert n4.keys == [keys[3], keys[4]]
    assert (n1.no_more, n2.no_more, n3.no_more, n4.no_more) == (True, True, True, False)


def test_divide_corners_tile_parent():
    n1, n2, n3, n4 = _node([], width=101, height=51).divide()
    assert n1.ul == (0, 0) and n4.br == (101, 51)
    assert n1.ur == n2.ul and n1.br == n4.ul
    assert n3.ur == n4.ul and n2.br == n4.ur
    assert n1.bl == n3.ul


def test_divide_keeps_every_key_once():
    rng = random.Random(7)
    keys = [KeyPoint(rng.uniform(0, 100), rng.uniform(0, 100)) for _ in range(50)]
    children = _node(keys).divide()
    collected = [kp for child in children for kp in child.keys]
    assert sorted(collected, key=id) == sorted(keys, key=id)


def test_empty_input():
    assert distribute_oct_tree([], 0, 200, 0, 100, 10) == []


def test_well_separated_points_all_kept():
    keys = [KeyPoint(x, y, response=1.0) for x in (5, 55, 105, 155) for y in (5, 55)]
    result = distribute_oct_tree(keys, 0, 200, 0, 100, 100)
    assert sorted(result, key=lambda kp: (kp.x, kp.y)) == sorted(keys, key=lambda kp: (kp.x, kp.y))


def test_coincident_points_keep_strongest():
    keys = [KeyPoint(30, 30, response=r) for r in (1.0, 9.0, 4.0)]
    result = distribute_oct_tree(keys, 0, 100, 0, 100, 5)
    assert result == [keys[1]]


def test_result_is_subset_without_duplicates():
    rng = random.Random(11)
    keys = [KeyPoint(rng.uniform(0, 300), rng.uniform(0, 100), response=rng.random()) for _ in range(400)]
    result = distribute_oct_tree(keys, 0, 300, 0, 100, 50)
    assert len({id(kp) for kp in result}) == len(result)
    ids = {id(kp) for kp in keys}
    assert all(id(kp) in ids for kp in result)
    assert len(result) >= 50


def test_degenerate_region_rejected():
    with pytest.raises(ValueError):
        distribute_oct_tree([KeyPoint(1, 1)], 0, 10, 5, 5, 3)
    with pytest.raises(ValueError):
        distribute_oct_tree([KeyPoint(1, 1)], 0, 10, 0, 100, 3)