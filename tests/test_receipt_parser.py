"""Tests for locating and parsing the OCR provider's JSON."""

from datetime import date
from decimal import Decimal

import pytest

from pocket_ledger.services.ocr import (
    ReceiptParseError,
    build_instructions,
    locate_json_object,
    parse_receipt_response,
)


class TestLocateJson:

    def test_object_wrapped_in_prose(self):
        text = 'Here: {"items":[{"description":"Coffee","price":4.5,"category":"food-dining"}]}'
        extraction = parse_receipt_response(text)
        assert len(extraction.items) == 1
        item = extraction.items[0]
        assert item.price == Decimal("4.5")
        assert item.category_id == "food-dining"

    def test_braces_inside_strings(self):
        text = 'Sure! {"date": null, "items": [{"description": "Set {2 pcs}", "price": 3}]} hope this helps }'
        extraction = parse_receipt_response(text)
        assert extraction.items[0].description == "Set {2 pcs}"

    def test_skips_leading_object_that_does_not_parse(self):
        text = "{not: json} then {\"items\": [{\"description\": \"Tea\", \"price\": \"2.10\"}]}"
        extraction = parse_receipt_response(text)
        assert extraction.items[0].price == Decimal("2.10")

    def test_code_fence(self):
        text = '```json\n{"date": "2024-03-09", "items": []}\n```'
        assert locate_json_object(text) == {"date": "2024-03-09", "items": []}

    def test_stray_opening_brace_before_object(self):
        text = 'Use { carefully. {"items": []}'
        assert locate_json_object(text) == {"items": []}

    def test_no_object_raises(self):
        with pytest.raises(ReceiptParseError):
            parse_receipt_response("I could not read this receipt.")

    def test_invalid_json_raises(self):
        with pytest.raises(ReceiptParseError):
            parse_receipt_response("{items: [oops]}")


class TestItemRules:

    def test_unknown_or_missing_category_defaults(self):
        text = '{"items": [{"description": "A", "price": 1, "category": "bogus"}, {"description": "B", "price": 2}]}'
        extraction = parse_receipt_response(text)
        assert [i.category_id for i in extraction.items] == ["miscellaneous-other"] * 2

    def test_drops_bad_prices(self):
        text = (
            '{"items": ['
            '{"description": "zero", "price": 0},'
            '{"description": "negative", "price": -3},'
            '{"description": "text", "price": "abc"},'
            '{"description": "missing"},'
            '{"description": "bool", "price": true},'
            '{"description": "ok", "price": "7.25"}'
            ']}'
        )
        extraction = parse_receipt_response(text)
        assert [i.description for i in extraction.items] == ["ok"]

    def test_blank_description_becomes_item(self):
        extraction = parse_receipt_response('{"items": [{"description": "  ", "price": 1}]}')
        assert extraction.items[0].description == "Item"

    def test_receipt_date(self):
        assert parse_receipt_response('{"date": "2024-03-09", "items": []}').receipt_date == date(2024, 3, 9)
        assert parse_receipt_response('{"date": "someday", "items": []}').receipt_date is None
        assert parse_receipt_response('{"date": null, "items": []}').receipt_date is None

    def test_items_not_a_list(self):
        assert parse_receipt_response('{"items": "none"}').items == []


def test_instructions_list_every_category():
    prompt = build_instructions()
    assert "- food-dining: Food & Dining" in prompt
    assert "- miscellaneous-other: Miscellaneous / Other" in prompt
    assert '"items"' in prompt
