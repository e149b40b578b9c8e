"""Linear composite scores over standardized inputs from two pitch super-groups."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from fractions import Fraction

from statcast_leaderboards.numeric import round_half_up

# xDeception regression coefficients, fastball block
XD_FB_VAA = -1.2219
XD_FB_HAA = -0.2740
XD_FB_VB = 0.3830
XD_FB_HB = -0.2684
XD_FB_EXT = -0.8779

# xDeception regression coefficients, offspeed block
XD_OS_VAA = 1.1265
XD_OS_HAA = 0.3900
XD_OS_VB = 0.0947
XD_OS_HB = -0.2621
XD_OS_EXT = 1.2845

XDECEPTION_FASTBALL: dict[str, float] = {
    "vaa": XD_FB_VAA,
    "haa": XD_FB_HAA,
    "vb": XD_FB_VB,
    "hb": XD_FB_HB,
    "ext": XD_FB_EXT,
}
XDECEPTION_OFFSPEED: dict[str, float] = {
    "vaa": XD_OS_VAA,
    "haa": XD_OS_HAA,
    "vb": XD_OS_VB,
    "hb": XD_OS_HB,
    "ext": XD_OS_EXT,
}


@dataclass(frozen=True)
class SuperGroupMeans:
    """Weighted mean of each standardized input across one super-group's categories."""

    weight: Fraction = Fraction(0)
    means: Mapping[str, Fraction | None] = field(default_factory=dict)


@dataclass(frozen=True)
class CompositeScorer:
    name: str
    primary: Mapping[str, float]
    secondary: Mapping[str, float]
    precision: int = 3

    def score(self, primary: SuperGroupMeans, secondary: SuperGroupMeans) -> float | None:
        """Dot product of coefficients and group means, or ``None`` if either group is empty.

        A missing input mean in either group also yields ``None``; a score is never
        computed from part of its inputs.
        """
        if primary.weight <= 0 or secondary.weight <= 0:
            return None
        total = Fraction(0)
        for coefficients, group in ((self.primary, primary), (self.secondary, secondary)):
            for name, coefficient in coefficients.items():
                mean = group.means.get(name)
                if mean is None:
                    return None
                total += Fraction(str(coefficient)) * mean
        return round_half_up(total, self.precision)


XDECEPTION_SCORER = CompositeScorer("xdeception_score", XDECEPTION_FASTBALL, XDECEPTION_OFFSPEED)
