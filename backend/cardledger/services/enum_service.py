"""
Canonicalization of free-text classification values.

Spreadsheet exports spell the same business unit, cost center or service type
in many ways ("DWS G", "tools & services", "OH Exps."). Each target enum has a
curated alias table (lower-cased raw value -> canonical member); values not in
the table fall back to a case-insensitive exact match against the members.
"""
import enum
from typing import Dict, Optional, Type
from cardledger.models.expense_entry import (
    TypeOfService, BusinessUnit, CostCenter, ApprovedBy, ServiceStatus, Recurring
)


TYPE_OF_SERVICE_ALIASES: Dict[str, TypeOfService] = {
    "tool & service": TypeOfService.SERVICE,
    "tools & service": TypeOfService.SERVICE,
    "tool & services": TypeOfService.SERVICE,
    "tools & services": TypeOfService.SERVICE,
    "tool": TypeOfService.TOOL,
    "service": TypeOfService.SERVICE,
    "google adwords expenses": TypeOfService.GOOGLE_ADWORDS_EXPENSE,
    "google adwords expense": TypeOfService.GOOGLE_ADWORDS_EXPENSE,
}

BUSINESS_UNIT_ALIASES: Dict[str, BusinessUnit] = {
    "dws g": BusinessUnit.DWSG,
    "dwsg": BusinessUnit.DWSG,
    "signature": BusinessUnit.SIGNATURE,
    "collabx": BusinessUnit.COLLABX,
    "wytlabs": BusinessUnit.WYTLABS,
    "smegoweb": BusinessUnit.SMEGOWEB,
    "shared": BusinessUnit.WYTLABS,
    "excel forum": BusinessUnit.WYTLABS,
    "excel fourm": BusinessUnit.WYTLABS,
    "wytlabs and dws": BusinessUnit.WYTLABS,
}

COST_CENTER_ALIASES: Dict[str, CostCenter] = {
    "ops": CostCenter.OPS,
    "oh exps": CostCenter.OH_EXPS,
    "oh exps.": CostCenter.OH_EXPS,
    "fe": CostCenter.FE,
    "support": CostCenter.SUPPORT,
    "management exps": CostCenter.MANAGEMENT_EXPS,
    "management exps.": CostCenter.MANAGEMENT_EXPS,
}

APPROVED_BY_ALIASES: Dict[str, ApprovedBy] = {
    "vaibhav": ApprovedBy.VAIBHAV,
    "marc": ApprovedBy.MARC,
    "dawood": ApprovedBy.DAWOOD,
    "raghav": ApprovedBy.RAGHAV,
    "tarun": ApprovedBy.TARUN,
    "yulia": ApprovedBy.YULIA,
    "sarthak": ApprovedBy.SARTHAK,
    "harshit": ApprovedBy.HARSHIT,
    "suspense": ApprovedBy.TARUN,
}

STATUS_ALIASES: Dict[str, ServiceStatus] = {
    "deactive-nextmonth": ServiceStatus.DEACTIVE,
    "deactivate-nextmonth": ServiceStatus.DEACTIVE,
}

RECURRING_ALIASES: Dict[str, Recurring] = {
    "recurring_m": Recurring.MONTHLY,
    "recurring_y": Recurring.YEARLY,
    "onetime": Recurring.ONE_TIME,
    "one time": Recurring.ONE_TIME,
}

_ALIAS_TABLES: Dict[Type[enum.Enum], Dict[str, enum.Enum]] = {
    TypeOfService: TYPE_OF_SERVICE_ALIASES,
    BusinessUnit: BUSINESS_UNIT_ALIASES,
    CostCenter: COST_CENTER_ALIASES,
    ApprovedBy: APPROVED_BY_ALIASES,
    ServiceStatus: STATUS_ALIASES,
    Recurring: RECURRING_ALIASES,
}


def canonicalize(value, target: Type[enum.Enum]) -> Optional[enum.Enum]:
    """
    Map a raw cell value to a member of ``target``.

    Returns None when the value is blank or cannot be resolved.
    """
    if value is None:
        return None
    if isinstance(value, target):
        return value
    norm = str(value).strip().lower()
    if not norm:
        return None

    aliases = _ALIAS_TABLES.get(target, {})
    if norm in aliases:
        return aliases[norm]

    for member in target:
        if member.value.lower() == norm:
            return member
    return None


def canonical_type_of_service(value) -> Optional[TypeOfService]:
    return canonicalize(value, TypeOfService)


def canonical_business_unit(value) -> Optional[BusinessUnit]:
    return canonicalize(value, BusinessUnit)


def canonical_cost_center(value) -> Optional[CostCenter]:
    return canonicalize(value, CostCenter)


def canonical_approved_by(value) -> Optional[ApprovedBy]:
    return canonicalize(value, ApprovedBy)


def canonical_status(value) -> ServiceStatus:
    """Unresolved status defaults to Active."""
    return canonicalize(value, ServiceStatus) or ServiceStatus.ACTIVE


def canonical_recurring(value) -> Recurring:
    """Unresolved recurring cadence defaults to One-time."""
    return canonicalize(value, Recurring) or Recurring.ONE_TIME
