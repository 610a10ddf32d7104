"""
Tests for header alias resolution.
"""
from cardledger.services.field_resolver import FieldResolver


def test_resolves_historical_header_spellings():
    row = {
        "Card Number/Pavment from": "M003",
        " card assigned to ": "John Doe",
        "Particulars - from cc statement": "ChatGPT",
        "Amt (USD/Euro/Any)": "200",
        "Tool or Service Handler (User Name)": "Raghav",
    }
    fields = FieldResolver(row)

    assert fields.field("card_number") == "M003"
    assert fields.field("card_assigned_to") == "John Doe"
    assert fields.field("particulars") == "ChatGPT"
    assert fields.field("amount") == "200"
    assert fields.field("service_handler") == "Raghav"


def test_first_alias_wins():
    fields = FieldResolver({"Card Number": "A1", "Card No": "B2"})
    assert fields.field("card_number") == "A1"


def test_missing_and_blank_fields():
    fields = FieldResolver({"Currency": "   ", "Date": None})

    assert fields.field("business_unit") is None
    assert fields.text("currency", "USD") == "USD"
    assert fields.text("date") == ""
