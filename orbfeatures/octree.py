"""Spreading keypoints evenly over an image by recursive quadrant splitting."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

from .keypoint import KeyPoint

Corner = tuple[int, int]


@dataclass(eq=False)
class ExtractorNode:
    """A rectangular region together with the keypoints that fall inside it."""

    ul: Corner
    ur: Corner
    bl: Corner
    br: Corner
    keys: list[KeyPoint] = field(default_factory=list)
    no_more: bool = False

    def divide(self) -> tuple["ExtractorNode", "ExtractorNode", "ExtractorNode", "ExtractorNode"]:
        """Split into four quadrants: upper left, upper right, lower left, lower right."""
        half_x = math.ceil((self.ur[0] - self.ul[0]) / 2)
        half_y = math.ceil((self.br[1] - self.ul[1]) / 2)
        ux, uy = self.ul

        n1 = ExtractorNode(ul=self.ul, ur=(ux + half_x, uy), bl=(ux, uy + half_y),
                           br=(ux + half_x, uy + half_y))
        n2 = ExtractorNode(ul=n1.ur, ur=self.ur, bl=n1.br, br=(self.ur[0], uy + half_y))
        n3 = ExtractorNode(ul=n1.bl, ur=n1.br, bl=self.bl, br=(n1.br[0], self.bl[1]))
        n4 = ExtractorNode(ul=n3.ur, ur=n2.br, bl=n3.br, br=self.br)

        split_x, split_y = n1.ur[0], n1.br[1]
        for kp in self.keys:
            if kp.x < split_x:
                (n1 if kp.y < split_y else n3).keys.append(kp)
            elif kp.y < split_y:
                n2.keys.append(kp)
            else:
                n4.keys.append(kp)

        for child in (n1, n2, n3, n4):
            child.no_more = len(child.keys) == 1
        return n1, n2, n3, n4


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _initial_nodes(keypoints: list[KeyPoint], width: int, height: int) -> list[ExtractorNode]:
    if height == 0:
        raise ValueError("region must have a non-zero height")
    count = _round_half_away(width / height)
    if count < 1:
        raise ValueError("region is too narrow for its height")
    step = width / count
    nodes = []
    for i in range(count):
        left, right = int(step * i), int(step * (i + 1))
        nodes.append(ExtractorNode(ul=(left, 0), ur=(right, 0), bl=(left, height), br=(right, height)))
    for kp in keypoints:
        index = min(max(int(kp.x / step), 0), count - 1)
        nodes[index].keys.append(kp)

    kept = [node for node in nodes if node.keys]
    for node in kept:
        node.no_more = len(node.keys) == 1
    return kept


def distribute_oct_tree(
    keypoints: Iterable[KeyPoint], min_x: int, max_x: int, min_y: int, max_y: int, n: int
) -> list[KeyPoint]:
    """Split the region until about ``n`` cells hold keypoints; keep the strongest of each.

    Keypoint coordinates are relative to ``(min_x, min_y)``.
    """
    nodes: deque[ExtractorNode] = deque(
        _initial_nodes(list(keypoints), max_x - min_x, max_y - min_y)
    )
    to_expand: list[tuple[int, ExtractorNode]] = []
    finished = False

    while not finished:
        prev_size = len(nodes)
        to_expand = []
        created: list[ExtractorNode] = []
        kept: list[ExtractorNode] = []
        for node in nodes:
            if node.no_more:
                kept.append(node)
                continue
            for child in node.divide():
                if child.keys:
                    created.append(child)
                    if len(child.keys) > 1:
                        to_expand.append((len(child.keys), child))
        nodes = deque(list(reversed(created)) + kept)

        if len(nodes) >= n or len(nodes) == prev_size:
            finished = True
        elif len(nodes) + len(to_expand) * 3 > n:
            while not finished:
                prev_size = len(nodes)
                previous = sorted(to_expand, key=lambda item: item[0])
                to_expand = []
                for _, node in reversed(previous):
                    for child in node.divide():
                        if child.keys:
                            nodes.appendleft(child)
                            if len(child.keys) > 1:
                                to_expand.append((len(child.keys), child))
                    nodes.remove(node)
                    if len(nodes) >= n:
                        break
                if len(nodes) >= n or len(nodes) == prev_size:
                    finished = True

    return [max(node.keys, key=lambda kp: kp.response) for node in nodes]