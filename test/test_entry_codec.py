from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gaming_desk.domain.entities import PaymentMethod
from gaming_desk.infrastructure.entry_codec import (
    LegacySnackList,
    StructuredSnackOrders,
    classify_snacks,
    decode_snacks,
    document_to_session,
    parse_timestamp,
    session_to_document,
)


def test_legacy_labels_fold_into_priced_lines():
    lines = decode_snacks(["soda", "soda", "chips"])
    assert [(l.display_name, l.quantity, l.unit_price, l.line_total) for l in lines] == [
        ("Soda", 2, 50, 100),
        ("Chips", 1, 40, 40),
    ]
    assert all(l.category == "legacy" for l in lines)


def test_unknown_legacy_label_is_free():
    (line,) = decode_snacks(["nachos"])
    assert line.display_name == "Nachos"
    assert line.unit_price == 0
    assert line.line_total == 0


def test_discriminator_looks_at_first_element():
    assert isinstance(classify_snacks(["soda"]), LegacySnackList)
    assert isinstance(classify_snacks([{"id": "water"}]), StructuredSnackOrders)
    assert classify_snacks([]) == StructuredSnackOrders(lines=())
    assert classify_snacks(None) == StructuredSnackOrders(lines=())


def test_structured_line_total_is_rederived():
    (line,) = decode_snacks([
        {"id": "water", "name": "Water", "category": "general", "quantity": 3, "unitPrice": 10, "totalPrice": 999},
    ])
    assert line.quantity == 3
    assert line.line_total == 30


def test_document_roundtrip_fields():
    doc = {
        "_id": "abc123",
        "customerName": " Meera ",
        "phoneNumber": "+91 9876543210",
        "numberOfPeople": 2,
        "duration": 1.5,
        "snacks": ["combo"],
        "subTotal": 350,
        "timestamp": datetime(2026, 1, 2, 3, 4, 5),
        "isRenewed": True,
        "age": 0,
        "paymentMode": "online",
    }
    s = document_to_session(doc)
    assert s.id == "abc123"
    assert s.customer_name == "Meera"
    assert s.party_size == 2
    assert s.started_at.tzinfo is not None
    assert s.renewed is True
    assert s.notification_sent is False
    assert s.age_years is None
    assert s.payment_method is PaymentMethod.ONLINE
    assert s.snack_orders[0].unit_price == 200

    out = session_to_document(s)
    assert out["snacks"] == [
        {"id": "combo", "name": "Combo", "category": "legacy", "quantity": 1, "unitPrice": 200, "totalPrice": 200},
    ]
    assert out["paymentMode"] == "online"
    assert out["smsSent"] is False
    assert "_id" not in out


@pytest.mark.parametrize(
    "raw",
    [
        datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        "2026-01-02T03:04:05Z",
        1767323045000,
    ],
)
def test_timestamp_shapes(raw):
    assert parse_timestamp(raw) == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_missing_timestamp_is_rejected():
    with pytest.raises(ValueError):
        document_to_session({"_id": "x", "customerName": "A"})


@pytest.mark.parametrize("duration", [float("inf"), float("nan"), 1e9, -1, 25])
def test_out_of_range_duration_is_an_invalid_document(duration):
    doc = {"_id": "x", "customerName": "A", "duration": duration, "timestamp": "2026-01-02T03:04:05Z"}
    with pytest.raises(ValueError):
        document_to_session(doc)
