from .unpack import (
    condense,
    failure_summary,
    proportion_below,
    reveal,
    reveal_postprocess,
    reveal_reliabilities,
)

__all__ = [
    "condense",
    "failure_summary",
    "proportion_below",
    "reveal",
    "reveal_postprocess",
    "reveal_reliabilities",
]
