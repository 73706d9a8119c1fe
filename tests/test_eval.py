from pathlib import Path

import eval as search_eval

GOLD = Path(__file__).resolve().parents[1] / "eval_data" / "gold.jsonl"


def test_gold_file_loads():
    cases = search_eval._load_gold(GOLD)
    assert cases and all("query" in c and c["expected"] for c in cases)


def test_evaluate_bundled_sheet(sheet):
    summary = search_eval.evaluate(sheet, search_eval._load_gold(GOLD), k=10)
    kw = summary["modes"]["keyword"]
    assert kw["recall_at_k"] == 1.0
    assert kw["mrr_at_k"] == 1.0
    assert 0.0 < summary["modes"]["ranked"]["recall_at_k"] <= 1.0


def test_evaluate_reports_failures(sheet):
    gold = [{"qid": "miss", "query": "zzz", "expected": ["SELECT"]}]
    summary = search_eval.evaluate(sheet, gold, k=5)
    assert summary["modes"]["keyword"]["failed"] == ["miss"]
    assert summary["modes"]["keyword"]["mrr_at_k"] == 0.0
