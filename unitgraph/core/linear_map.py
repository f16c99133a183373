"""Linear Map Algebra - the affine transform y = x * factor + offset.

Invariants:
    - A LinearMap is immutable; compose() and invert() return new maps
    - Any composition chain collapses to a single (factor, offset) pair
    - identity() is exactly factor=1, offset=0
    - evaluate() never raises: degenerate maps are rejected before they exist
"""

from dataclasses import dataclass

from unitgraph.core.errors import InvalidDefinitionError


@dataclass(frozen=True)
class LinearMap:
    """Affine transform from one unit to another."""
    factor: float = 1.0
    offset: float = 0.0

    def __post_init__(self):
        if self.factor == 0:
            raise InvalidDefinitionError("LinearMap", "factor is zero; the map is not invertible")

    @classmethod
    def identity(cls) -> "LinearMap":
        return cls(1.0, 0.0)

    @property
    def is_identity(self) -> bool:
        return self.factor == 1.0 and self.offset == 0.0

    def evaluate(self, value: float) -> float:
        return value * self.factor + self.offset

    def __call__(self, value: float) -> float:
        return self.evaluate(value)

    def compose(self, other: "LinearMap") -> "LinearMap":
        """Apply self first, then other."""
        # other(self(x)) = (x*f1 + o1)*f2 + o2
        return LinearMap(
            self.factor * other.factor,
            self.offset * other.factor + other.offset,
        )

    def invert(self) -> "LinearMap":
        """Solve y = x*f + o for x: x = y/f - o/f."""
        return LinearMap(1.0 / self.factor, -self.offset / self.factor)

    def without_offset(self) -> "LinearMap":
        """Scale-only part of the map, for converting intervals."""
        return LinearMap(self.factor, 0.0)
