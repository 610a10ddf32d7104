"""
Tests for classification value canonicalization.
"""
import pytest
from cardledger.models import TypeOfService, BusinessUnit, CostCenter, ApprovedBy, ServiceStatus, Recurring
from cardledger.services.enum_service import (
    canonical_type_of_service, canonical_business_unit, canonical_cost_center,
    canonical_approved_by, canonical_status, canonical_recurring
)


@pytest.mark.parametrize("raw, expected", [
    ("Tools & Services", TypeOfService.SERVICE),
    ("tool", TypeOfService.TOOL),
    ("Google Adwords Expenses", TypeOfService.GOOGLE_ADWORDS_EXPENSE),
    ("  hosting ", TypeOfService.HOSTING),
])
def test_type_of_service_aliases(raw, expected):
    assert canonical_type_of_service(raw) == expected


@pytest.mark.parametrize("raw, expected", [
    ("DWS G", BusinessUnit.DWSG),
    ("Excel Fourm", BusinessUnit.WYTLABS),
    ("Wytlabs and DWS", BusinessUnit.WYTLABS),
    ("COLLABX", BusinessUnit.COLLABX),
])
def test_business_unit_aliases(raw, expected):
    assert canonical_business_unit(raw) == expected


def test_cost_center_and_approver_aliases():
    assert canonical_cost_center("OH Exps.") == CostCenter.OH_EXPS
    assert canonical_cost_center("Management EXPS") == CostCenter.MANAGEMENT_EXPS
    assert canonical_approved_by("Suspense") == ApprovedBy.TARUN
    assert canonical_approved_by("marc") == ApprovedBy.MARC


def test_unresolved_values_return_none():
    assert canonical_business_unit("Acme Corp") is None
    assert canonical_type_of_service("") is None
    assert canonical_cost_center(None) is None


def test_enum_member_passes_through():
    assert canonical_business_unit(BusinessUnit.SIGNATURE) == BusinessUnit.SIGNATURE


def test_status_and_recurring_defaults():
    assert canonical_status("Deactive-NextMonth") == ServiceStatus.DEACTIVE
    assert canonical_status("something else") == ServiceStatus.ACTIVE
    assert canonical_status(None) == ServiceStatus.ACTIVE
    assert canonical_recurring("Recurring_M") == Recurring.MONTHLY
    assert canonical_recurring("recurring_y") == Recurring.YEARLY
    assert canonical_recurring("One Time") == Recurring.ONE_TIME
    assert canonical_recurring("") == Recurring.ONE_TIME
