"""
Rated weight of a multi-package shipment.

Each package is charged by the larger of its real and cubic weight.
"""

from typing import Iterable, Protocol

CUBIC_DIVISOR = 6000


class Package(Protocol):
    width: float
    length: float
    height: float
    weight: float
    quantity: int


def cubic_weight(width_cm: float, length_cm: float, height_cm: float) -> float:
    return width_cm * length_cm * height_cm / CUBIC_DIVISOR


def effective_weight(package: Package) -> float:
    return max(package.weight, cubic_weight(package.width, package.length, package.height))


def rated_weight(packages: Iterable[Package]) -> float:
    total = 0.0
    for package in packages:
        total += effective_weight(package) * package.quantity
    return round(total, 3)
