"""
Tests for shared cost allocations.
"""
from decimal import Decimal
import pytest
from cardledger.core.exceptions import AllocationExceedsTotal
from cardledger.models import BusinessUnit
from cardledger.services.allocation_service import (
    parse_boolean, parse_shared_allocations, validate_shared_allocations, format_shared_allocations
)


def test_parse_text_allocations():
    allocations = parse_shared_allocations("Wytlabs: 200, DWS G - 50; Unknown: 10")

    assert [(a.business_unit, a.amount) for a in allocations] == [
        (BusinessUnit.WYTLABS, Decimal("200")),
        (BusinessUnit.DWSG, Decimal("50")),
    ]


def test_parse_structured_and_json_allocations():
    structured = parse_shared_allocations([{"businessUnit": "Collabx", "amount": 25}, {"bu": "Signature", "amount": 0}])
    from_json = parse_shared_allocations('[{"business_unit": "Smegoweb", "amount": "12.5"}]')

    assert [(a.business_unit, a.amount) for a in structured] == [(BusinessUnit.COLLABX, Decimal("25"))]
    assert [(a.business_unit, a.amount) for a in from_json] == [(BusinessUnit.SMEGOWEB, Decimal("12.5"))]


def test_allocations_exceeding_total_are_rejected():
    with pytest.raises(AllocationExceedsTotal) as exc:
        validate_shared_allocations(
            True, "Wytlabs: 200, Collabx: 150", Decimal("300"), BusinessUnit.WYTLABS
        )
    assert "exceed" in str(exc.value)


def test_primary_business_unit_is_appended_with_zero():
    is_shared, allocations = validate_shared_allocations(
        True, "Collabx: 100", Decimal("300"), BusinessUnit.WYTLABS
    )

    assert is_shared is True
    assert [(a.business_unit, a.amount) for a in allocations] == [
        (BusinessUnit.COLLABX, Decimal("100")),
        (BusinessUnit.WYTLABS, Decimal("0")),
    ]


def test_not_shared_ignores_allocations():
    assert validate_shared_allocations(False, "Collabx: 999", Decimal("1"), BusinessUnit.WYTLABS) == (False, [])


def test_parse_boolean_and_format():
    assert parse_boolean("Yes") is True
    assert parse_boolean(" shared ") is True
    assert parse_boolean("no") is False
    assert parse_boolean(None) is False

    _, allocations = validate_shared_allocations(True, "Wytlabs: 200, Collabx: 100", Decimal("300"), BusinessUnit.WYTLABS)
    assert format_shared_allocations(allocations) == "Wytlabs: 200, Collabx: 100"
