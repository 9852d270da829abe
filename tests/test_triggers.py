from contract_analysis.json_repair import parse_llm_response
from contract_analysis.merge import merge_analysis
from contract_analysis.schema import AnalysisDocument
from contract_analysis.triggers import collect_global_triggers


def test_triggers_from_full_document(clean_response):
    data, _ = parse_llm_response(clean_response)
    triggers = collect_global_triggers(merge_analysis(data))
    assert triggers == {
        "Opening of Escrow": "2024-03-01",
        "Due Diligence End": "2024-03-31",
        "Outside Closing Date": "2024-05-15",
        "Title Review": "2024-03-15",
    }


def test_opening_of_escrow_is_always_present():
    assert collect_global_triggers(AnalysisDocument()) == {"Opening of Escrow": None}


def test_unnamed_and_undated_contingencies():
    document = merge_analysis(
        {"contingencies": [{"actualDate": "2024-04-01"}, {"name": "Zoning", "actualDate": "TBD"}]}
    )
    assert collect_global_triggers(document) == {"Opening of Escrow": None, "Contingency 1": "2024-04-01"}
