from __future__ import annotations


class SplineConfigError(ValueError):
    """Raised when a spline evaluation is requested with an invalid degree."""


class InsufficientCandidatesError(ValueError):
    """Raised when more subsamples are requested than candidate positions exist."""

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(f"insufficient candidates: requested {requested} of {available}")
        self.requested = int(requested)
        self.available = int(available)
