"""
Service Category Catalog.

Static assignment of every service category to its excess-weight class and
to the weight below which no excess is charged. Tracked vehicles and
door-to-door-interior are bulk services and get a larger free allowance.
"""

from typing import Dict, NamedTuple

from freight_backend.app.models.rating_enums import ServiceCategory, WeightRateClass


class CategoryRule(NamedTuple):
    weight_class: WeightRateClass
    weight_limit_kg: int


CATEGORY_RULES: Dict[ServiceCategory, CategoryRule] = {
    ServiceCategory.STANDARD: CategoryRule(WeightRateClass.STANDARD, 10),
    ServiceCategory.EMERGENCY: CategoryRule(WeightRateClass.STANDARD, 10),
    ServiceCategory.SATURDAY: CategoryRule(WeightRateClass.STANDARD, 10),
    ServiceCategory.EXCLUSIVE: CategoryRule(WeightRateClass.STANDARD, 10),
    ServiceCategory.DIFFICULT_ACCESS: CategoryRule(WeightRateClass.STANDARD, 10),
    ServiceCategory.METROPOLITAN_REGION: CategoryRule(WeightRateClass.STANDARD, 10),
    ServiceCategory.SUNDAY_HOLIDAY: CategoryRule(WeightRateClass.STANDARD, 10),
    ServiceCategory.NORMAL_BIOLOGICAL: CategoryRule(WeightRateClass.BIOLOGICAL, 10),
    ServiceCategory.INFECTIOUS_BIOLOGICAL: CategoryRule(WeightRateClass.BIOLOGICAL, 10),
    ServiceCategory.TRACKED_VEHICLE: CategoryRule(WeightRateClass.STANDARD, 100),
    ServiceCategory.DOOR_TO_DOOR_INTERIOR: CategoryRule(WeightRateClass.STANDARD, 100),
    ServiceCategory.RESHIPMENT: CategoryRule(WeightRateClass.RESHIPMENT, 10),
}


def rule_for(category: ServiceCategory) -> CategoryRule:
    return CATEGORY_RULES[ServiceCategory(category)]
