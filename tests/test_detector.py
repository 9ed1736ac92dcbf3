import json

import pytest

from journal_analytics.detector import classify, detect, detect_records, load_records
from journal_analytics.errors import JournalInputError, ParseError
from journal_analytics.models import RoundTrips, StandardTrades, Unrecognized

pytestmark = pytest.mark.unit


def test_standard_trades_detected(standard_text):
    parsed = detect(standard_text)
    assert isinstance(parsed, StandardTrades)
    assert parsed.label == "standard-trades"
    assert len(parsed.records) == 7


def test_round_trip_detected(round_trip_text):
    parsed = detect(round_trip_text)
    assert isinstance(parsed, RoundTrips)
    assert classify(round_trip_text) == "round-trip"


def test_unknown_shape_keeps_first_keys():
    parsed = detect(json.dumps([{"symbol": "SOL", "amount": 1}]))
    assert isinstance(parsed, Unrecognized)
    assert parsed.label == "unknown"
    assert parsed.first_keys == ["amount", "symbol"]


def test_non_object_first_element_is_unrecognized():
    parsed = detect_records([1, 2, 3])
    assert isinstance(parsed, Unrecognized)
    assert parsed.first_keys is None


def test_only_first_element_decides_shape():
    records = [
        {"date": "2025-01-01T00:00:00Z", "asset": "SOL", "side": "buy", "quantity": 1, "price": 1},
        {"pnlSol": 1, "solInvested": 1, "solReceived": 2, "timestamp": 1, "tokenName": "X"},
    ]
    assert isinstance(detect_records(records), StandardTrades)


@pytest.mark.parametrize("text", ["not json", "{\"a\": 1}", "[]", "42"])
def test_load_records_rejects_bad_payloads(text):
    with pytest.raises(ParseError):
        load_records(text)


def test_parse_error_is_a_value_error():
    with pytest.raises(ValueError) as excinfo:
        detect("[")
    assert isinstance(excinfo.value, JournalInputError)
    assert "Invalid JSON" in str(excinfo.value)
