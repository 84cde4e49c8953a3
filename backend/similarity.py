"""Route similarity checks and duplicate pruning.

Two routes are compared by walking an evenly spaced sample of their steps in
lockstep and counting how many sampled start points are far apart. The route
hash is a cheaper fingerprint for exact or near-exact duplicates.
"""

from collections.abc import Sequence

import geo
from config import SIMILARITY_POINT_KM, SIMILARITY_RATIO, SIMILARITY_SAMPLE_SIZE
from models import RouteOption, RouteStep

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def sample_route(
    steps: Sequence[RouteStep], n: int = SIMILARITY_SAMPLE_SIZE
) -> list[RouteStep]:
    """Returns every ``len(steps) // n``-th step, or all steps if there are few."""
    if len(steps) <= n:
        return list(steps)
    stride = len(steps) // n
    return list(steps[::stride])


def are_different(
    route_a: Sequence[RouteStep] | None,
    route_b: Sequence[RouteStep] | None,
    threshold_ratio: float = SIMILARITY_RATIO,
    point_km: float = SIMILARITY_POINT_KM,
) -> bool:
    """True if more than ``threshold_ratio`` of sampled point pairs are apart.

    Empty or missing routes are never considered different.
    """
    if not route_a or not route_b:
        return False

    sample_a = sample_route(route_a)
    sample_b = sample_route(route_b)
    comparisons = min(len(sample_a), len(sample_b))

    differences = sum(
        1
        for a, b in zip(sample_a, sample_b)
        if geo.haversine_km(a.start, b.start) > point_km
    )
    return differences / comparisons > threshold_ratio


def route_hash(steps: Sequence[RouteStep]) -> str:
    """Fingerprints a route from roughly every tenth step's start point.

    Non-cryptographic: a 32-bit multiply-by-31 rolling hash over the
    coordinates rounded to four decimals, rendered in base 36. Collisions
    only cause an extra route to be pruned.
    """
    stride = max(1, len(steps) // 10)
    key = "|".join(
        f"{step.start.lat:.4f},{step.start.lng:.4f}"
        for step in steps[::stride]
    )

    value = 0
    for char in key:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return _to_base36(value)


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return sign + "".join(reversed(digits))


def dedupe(
    options: Sequence[RouteOption],
    threshold_ratio: float = SIMILARITY_RATIO,
    point_km: float = SIMILARITY_POINT_KM,
) -> list[RouteOption]:
    """Keeps each option that differs from every option kept before it.

    Options are expected in ascending AQI order so the cleanest route of each
    cluster survives. The first option is always kept.
    """
    kept: list[RouteOption] = []
    seen_hashes: set[str] = set()
    for option in options:
        if option.route_hash in seen_hashes:
            continue
        if kept and not all(
            are_different(existing.steps, option.steps, threshold_ratio, point_km)
            for existing in kept
        ):
            continue
        kept.append(option)
        seen_hashes.add(option.route_hash)
    return kept
