from typing import get_args

from contract_analysis.prompts import (
    CONTRACT_ANALYSIS_PROMPT,
    PROMPT_VERSION,
    TRUNCATION_MARKER,
    build_analysis_prompt,
    truncate_contract_text,
)
from contract_analysis.schema import TriggerKey


def test_prompt_appends_contract_text():
    prompt = build_analysis_prompt("Seller: Bo Smith")
    assert prompt.text == CONTRACT_ANALYSIS_PROMPT + "Seller: Bo Smith"
    assert prompt.truncated is False
    assert prompt.version == PROMPT_VERSION


def test_truncation_appends_marker():
    text, truncated = truncate_contract_text("abcdefghij", 4)
    assert truncated is True
    assert text == "abcd" + TRUNCATION_MARKER.format(limit=4)


def test_non_positive_limit_disables_truncation():
    assert truncate_contract_text("abcdefghij", 0) == ("abcdefghij", False)


def test_prompt_names_every_trigger_key():
    for key in get_args(TriggerKey):
        assert key in CONTRACT_ANALYSIS_PROMPT
