from pathfinder.selection.variants import (
    find_path_f1,
    find_path_f2,
    find_path_f3,
    find_path_multi,
    normalized_difference,
    prepare_channels,
    select_subset,
    shifted_realizations,
)

__all__ = [
    "find_path_f1",
    "find_path_f2",
    "find_path_f3",
    "find_path_multi",
    "normalized_difference",
    "prepare_channels",
    "select_subset",
    "shifted_realizations",
]
