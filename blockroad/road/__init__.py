from .layout import (
    BEAD_ROWS,
    MIN_COLS,
    TREND_ROWS,
    bead_grid,
    by_parity,
    by_size,
    classifier_for,
    grid_to_json,
    layout,
    road_stats,
    trend_grid,
)

__all__ = [
    "BEAD_ROWS",
    "MIN_COLS",
    "TREND_ROWS",
    "bead_grid",
    "by_parity",
    "by_size",
    "classifier_for",
    "grid_to_json",
    "layout",
    "road_stats",
    "trend_grid",
]
