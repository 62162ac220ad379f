"""Exact decimal JSON helpers."""

from decimal import Decimal

import pytest

from orderpay.common.serialization import dumps, loads


def test_decimals_are_written_as_exact_number_literals():
    document = {"amount": Decimal("12345678901234567890.123456789"), "items": [Decimal("0.10"), 1, "x"], "ok": None}

    assert dumps(document) == '{"amount":12345678901234567890.123456789,"items":[0.10,1,"x"],"ok":null}'


def test_loads_reads_number_literals_as_decimal():
    assert loads(b'{"amount":0.1}') == {"amount": Decimal("0.1")}
    assert loads(dumps({"amount": Decimal("99999999999999999999.99")}))["amount"] == Decimal("99999999999999999999.99")


@pytest.mark.parametrize("value", [Decimal("NaN"), Decimal("Infinity")])
def test_non_finite_decimals_are_refused(value):
    with pytest.raises(ValueError):
        dumps({"amount": value})
