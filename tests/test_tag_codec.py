import pytest

import tag_codec
from tag_codec import TagParts, decode, encode, try_decode
from exceptions import InvalidIdentifierError, MalformedTagError


def test_encode_joins_with_single_underscore():
    assert encode("C1", "A") == "C1_A"


@pytest.mark.parametrize("customer_id,item_id", [
    ("C1", "A"),
    ("64f1c2aa9b", "item-0042"),
    ("cust.7", "X"),
])
def test_decode_reverses_encode(customer_id, item_id):
    assert decode(encode(customer_id, item_id)) == TagParts(customer_id, item_id)


@pytest.mark.parametrize("customer_id,item_id", [
    ("C_1", "A"),
    ("C1", "A_B"),
    ("", "A"),
    ("C1", ""),
    ("Clé", "A"),
    (None, "A"),
])
def test_encode_rejects_unrepresentable_identifiers(customer_id, item_id):
    with pytest.raises(InvalidIdentifierError):
        encode(customer_id, item_id)


def test_encode_error_names_the_field():
    with pytest.raises(InvalidIdentifierError) as exc_info:
        encode("C1", "A_B")
    assert exc_info.value.field == "item_id"


@pytest.mark.parametrize("raw", [
    "nodelimiter",
    "C1_A_B",
    "_A",
    "C1_",
    "_",
    "",
])
def test_decode_rejects_malformed(raw):
    with pytest.raises(MalformedTagError):
        decode(raw)


def test_decode_does_not_normalize():
    assert decode(" c1_a ") == TagParts(" c1", "a ")


def test_decode_rejects_non_string():
    with pytest.raises(MalformedTagError):
        decode(12345)


def test_try_decode():
    assert try_decode("C1_A") == TagParts("C1", "A")
    assert try_decode("C1_A_B") is None


def test_delimiter_constant():
    assert tag_codec.DELIMITER == "_"
