import pytest

from contract_analysis import json_repair
from contract_analysis.errors import ExtractionError, JSONParseError
from contract_analysis.json_repair import (
    balance_braces,
    locate_json_object,
    parse_llm_json,
    parse_llm_response,
    parse_with_strategy,
    repair_json,
)


def test_locate_json_object_with_surrounding_prose():
    payload = 'Here is the analysis:\n{"property": {"address": "123 Main St"}}\nLet me know if you need anything else.'
    assert locate_json_object(payload) == '{"property": {"address": "123 Main St"}}'


def test_locate_json_object_without_braces_returns_none():
    assert locate_json_object("I cannot analyze this document.") is None
    assert locate_json_object("") is None
    assert locate_json_object("} backwards {") is None


def test_parse_clean_json():
    payload = '{"property": {"address": "123 Main St", "purchasePrice": 500000}}'
    data, strategy = parse_with_strategy(payload)
    assert strategy == "direct"
    assert data["property"]["address"] == "123 Main St"
    assert data["property"]["purchasePrice"] == 500000


def test_trailing_commas_are_repaired():
    data, strategy = parse_with_strategy('{"property": {"purchasePrice": 500000,},}')
    assert strategy == "repaired"
    assert data == {"property": {"purchasePrice": 500000}}


def test_bare_keys_and_single_quotes_are_repaired():
    payload = "{property: {address: '123 Main St', purchasePrice: 500000}}"
    assert repair_json(payload) == '{"property": {"address": "123 Main St", "purchasePrice": 500000}}'
    assert parse_llm_json(payload) == {"property": {"address": "123 Main St", "purchasePrice": 500000}}


def test_apostrophe_inside_single_quoted_value_survives():
    data = parse_llm_json("{'option': 'Buyer's option to extend'}")
    assert data == {"option": "Buyer's option to extend"}


def test_repair_leaves_string_content_alone():
    payload = '{"note": "a,  }  b", "x": 1,}'
    data = parse_llm_json(payload)
    assert data["note"] == "a,  }  b"
    assert data["x"] == 1


def test_control_characters_outside_strings_are_stripped():
    assert parse_llm_json('{"a":\x01 1,\x02}') == {"a": 1}


def test_unescaped_inner_quotes_are_escaped():
    data, strategy = parse_with_strategy('{"description": "the "as-is" clause", "critical": true}')
    assert strategy == "repaired"
    assert data["description"] == 'the "as-is" clause'
    assert data["critical"] is True


@pytest.mark.parametrize(
    "payload",
    [
        '{"property": {"purchasePrice": 500000,},}',
        "{property: {address: '123 Main St', purchasePrice: 500000}}",
        'noise {"a":\x01 1,\x02,,  } more noise',
        '{"description": "the "as-is" clause",, "critical": true}',
        "{'cashDeal': True, 'loanAmount': None,\n\n}",
        "no braces at all",
    ],
)
def test_repair_is_idempotent(payload):
    once = repair_json(payload)
    assert repair_json(once) == once


def test_aggressive_pass_quotes_bare_values_and_literals():
    payload = '{"status": made, "cashDeal": True, "loanAmount": None, "price": $500,000}'
    data, strategy = parse_with_strategy(payload)
    assert strategy == "aggressive"
    assert data == {"status": "made", "cashDeal": True, "loanAmount": None, "price": "$500,000"}


def test_aggressive_pass_drops_invalid_escapes():
    data = parse_llm_json(r'{"note": "Section \5 applies", "ok": "line\nbreak"}')
    assert data["note"] == "Section 5 applies"
    assert data["ok"] == "line\nbreak"


def test_brace_balance_cuts_trailing_garbage():
    data, strategy = parse_with_strategy('{"a": 1} and also {"b": 2}')
    assert strategy == "brace_balance"
    assert data == {"a": 1}


def test_brace_balance_closes_truncated_response():
    truncated = (
        '{"property": {"address": "123 Main St", "purchasePrice": 500000}, '
        '"parties": {"buyer": {"name": "Acme'
    )
    data, strategy = parse_with_strategy(truncated)
    assert strategy == "brace_balance"
    assert data == {"property": {"address": "123 Main St", "purchasePrice": 500000}}


def test_balance_braces_ignores_braces_inside_strings():
    assert balance_braces('{"a": "}{"} tail') == '{"a": "}{"}'
    assert balance_braces("no object") is None


def test_parse_failure_returns_none():
    assert parse_llm_json("{not json at all ::: }") is None
    assert parse_llm_json("just words") is None
    assert parse_llm_json("") is None


def test_parse_llm_response_raises_typed_errors():
    with pytest.raises(ExtractionError):
        parse_llm_response("No JSON here")
    with pytest.raises(JSONParseError):
        parse_llm_response("{not json at all ::: }")


def test_parse_llm_response_with_prose(clean_response):
    data, strategy = parse_llm_response(clean_response)
    assert strategy == "direct"
    assert data["parties"]["buyer"]["name"] == "Desert Sun Holdings, LLC"


def test_parse_llm_response_keeps_truncated_tail():
    truncated = (
        'Sure, here it is:\n{"property": {"address": "123 Main St", "purchasePrice": 500000}, '
        '"parties": {"buyer": {"name": "Acme'
    )
    data, strategy = parse_llm_response(truncated)
    assert strategy == "brace_balance"
    assert data == {"property": {"address": "123 Main St", "purchasePrice": 500000}}


def test_truncation_right_after_a_closer_keeps_the_last_member():
    truncated = (
        '{"property": {"purchasePrice": 500000}, '
        '"parties": {"buyer": {"name": "Acme", "entityType": "LLC"}'
    )
    assert balance_braces(truncated) == truncated + "}}"
    data, strategy = parse_llm_response("Result:\n" + truncated)
    assert strategy == "brace_balance"
    assert data["parties"]["buyer"] == {"name": "Acme", "entityType": "LLC"}


def test_repair_runs_a_bounded_number_of_times(monkeypatch):
    calls = []
    original = json_repair.repair_json

    def counting_repair(candidate):
        calls.append(candidate)
        return original(candidate)

    monkeypatch.setattr(json_repair, "repair_json", counting_repair)
    assert parse_with_strategy("{not json at all ::: }") == (None, None)
    assert len(calls) <= 4
