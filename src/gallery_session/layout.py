"""
Masonry layout.

Distributes an ordered list of images into columns of roughly equal
height. Each image contributes ``1 / aspect_ratio``, its height when drawn
one unit wide.
"""

from collections.abc import Sequence

from .catalog.base import Image


def masonry_layout(images: Sequence[Image], column_count: int) -> list[list[Image]]:
    """
    Place images greedily into the currently shortest column.

    Ties go to the leftmost column. Images keep their relative input order
    within each column, and the same input always yields the same columns.

    Args:
        images: Images in catalog order
        column_count: Number of columns, at least 1

    Returns:
        ``column_count`` lists of images

    Raises:
        ValueError: If column_count is less than 1
    """
    if column_count < 1:
        raise ValueError(f"column_count must be at least 1, got {column_count}")

    columns: list[list[Image]] = [[] for _ in range(column_count)]
    heights = [0.0] * column_count

    for image in images:
        shortest = min(range(column_count), key=lambda i: heights[i])
        columns[shortest].append(image)
        heights[shortest] += image.height_at_unit_width

    return columns


def column_heights(columns: Sequence[Sequence[Image]]) -> list[float]:
    """Return the accumulated unit-width height of each column."""
    return [sum(image.height_at_unit_width for image in column) for column in columns]
