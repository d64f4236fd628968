import pytest

from exceptions import ValidationError
from order_models import OrderItem, OrderRecord, OrderStatus, order_from_source


class TestOrderStatus:

    @pytest.mark.parametrize("raw,expected", [
        ("CREATED", OrderStatus.CREATED),
        ("processing", OrderStatus.PROCESSING),
        (" Ready ", OrderStatus.READY),
        (OrderStatus.DELIVERED, OrderStatus.DELIVERED),
    ])
    def test_parse(self, raw, expected):
        assert OrderStatus.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["ON_HOLD", "", None, 3])
    def test_parse_unknown(self, raw):
        assert OrderStatus.parse(raw) is None


def test_dict_payload_normalized():
    record = order_from_source("ORD-1", {
        "customerId": "C1",
        "customerName": "Jane",
        "status": "CREATED",
        "items": [
            {"itemId": "A", "displayName": "Shirt", "starch": "light"},
            {"_id": "B", "name": "Trousers"},
        ],
    })

    assert record.order_id == "ORD-1"
    assert record.customer_id == "C1"
    assert record.customer_name == "Jane"
    assert record.items == [OrderItem("A", "Shirt"), OrderItem("B", "Trousers")]
    assert record.items[0].extra == {"starch": "light"}


def test_record_passed_through():
    record = OrderRecord("ORD-1", "C1", "CREATED", [OrderItem("A")])
    assert order_from_source("ORD-1", record) is record


@pytest.mark.parametrize("payload", [
    None,
    {"status": "CREATED", "items": []},
    {"customerId": "C1", "items": [{"name": "no id"}]},
    ["not", "a", "dict"],
])
def test_invalid_payloads(payload):
    with pytest.raises(ValidationError):
        order_from_source("ORD-1", payload)
