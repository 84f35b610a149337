from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable

from blockroad.domain import EMPTY_CELL, ClassifiedBlock, Parity, RoadCell, SizeClass

TREND_ROWS = 10
BEAD_ROWS = 6
MIN_COLS = 50

Grid = list[list[RoadCell]]


def by_parity(block: ClassifiedBlock) -> Parity:
    return block.parity


def by_size(block: ClassifiedBlock) -> SizeClass:
    return block.size_class


CLASSIFIERS: dict[str, Callable[[ClassifiedBlock], Parity | SizeClass]] = {
    "parity": by_parity,
    "size": by_size,
}


def classifier_for(mode: str) -> Callable[[ClassifiedBlock], Parity | SizeClass]:
    try:
        return CLASSIFIERS[mode]
    except KeyError:
        raise ValueError(f"unknown road mode {mode!r}; expected one of {sorted(CLASSIFIERS)}") from None


def _close(column: list[RoadCell], rows: int) -> list[RoadCell]:
    return column + [EMPTY_CELL] * (rows - len(column))


def layout(
    blocks: Iterable[ClassifiedBlock],
    classify: Callable[[ClassifiedBlock], Parity | SizeClass],
    rows: int,
    *,
    min_cols: int = MIN_COLS,
) -> Grid:
    """Streak columnization of a block sequence.

    Blocks are read oldest first. A class change always opens a new column; a
    streak longer than `rows` wraps into the next column. Every column is
    padded with empty cells to exactly `rows`, and the grid is padded with
    empty columns up to `min_cols`.
    """
    if rows < 1:
        raise ValueError("rows must be >= 1")
    columns: Grid = []
    current: list[RoadCell] = []
    last = None
    for block in sorted(blocks, key=lambda b: b.height):
        cls = classify(block)
        if current and (cls != last or len(current) >= rows):
            columns.append(_close(current, rows))
            current = []
        last = cls
        current.append(RoadCell(cls=cls, value=block.result_value))
    if current:
        columns.append(_close(current, rows))

    while len(columns) < min_cols:
        columns.append([EMPTY_CELL] * rows)
    return columns


def trend_grid(blocks: Iterable[ClassifiedBlock], mode: str = "parity") -> Grid:
    return layout(blocks, classifier_for(mode), TREND_ROWS)


def bead_grid(blocks: Iterable[ClassifiedBlock], mode: str = "parity") -> Grid:
    return layout(blocks, classifier_for(mode), BEAD_ROWS)


def grid_to_json(grid: Grid) -> list[list[dict]]:
    return [[cell.to_dict() for cell in column] for column in grid]


def road_stats(blocks: Iterable[ClassifiedBlock]) -> dict[str, int]:
    counts: Counter = Counter()
    for block in blocks:
        counts[block.parity.value] += 1
        counts[block.size_class.value] += 1
    return {
        "total": counts["ODD"] + counts["EVEN"],
        "odd": counts["ODD"],
        "even": counts["EVEN"],
        "big": counts["BIG"],
        "small": counts["SMALL"],
    }
