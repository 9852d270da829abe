from contract_analysis.fallback import find_property_address, find_purchase_price, synthesize_fallback
from contract_analysis.schema import TBD


def test_purchase_price_is_first_dollar_amount(sample_contract):
    assert find_purchase_price(sample_contract) == 1250000
    assert find_purchase_price("Deposit of $ 1500.50 due") == 1500.5
    assert find_purchase_price("No money mentioned") is None


def test_address_prefers_street_number(sample_contract):
    assert find_property_address(sample_contract) == "4100 Ridge Road, Mesa, AZ 85207"
    assert find_property_address("Property Address: 123 Main St, Springfield.") == "123 Main St, Springfield"


def test_address_without_number_uses_first_phrase():
    assert find_property_address("The premises known as Blackacre Farm") == "Blackacre Farm"
    assert find_property_address("Nothing relevant here") is None


def test_synthesize_fallback_populates_only_price_and_address(sample_contract):
    document = synthesize_fallback(sample_contract)
    assert document.analysis_meta.source == "fallback"
    assert document.property_info.address == "4100 Ridge Road, Mesa, AZ 85207"
    assert document.property_info.purchase_price == 1250000
    assert document.parties.buyer.name == TBD
    assert document.deposits.first_deposit.amount == 0


def test_synthesize_fallback_on_empty_text():
    document = synthesize_fallback(None)
    assert document.property_info.address == TBD
    assert document.property_info.purchase_price == 0
