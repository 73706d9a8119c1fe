import argparse
import json
import statistics
import time
from pathlib import Path
from typing import Any, Dict, List

from sql_cheatsheet.app import CheatSheet, catalog_from_config, load_config
from sql_cheatsheet.catalog.schema import ConceptRef


def _load_gold(path: Path) -> List[Dict[str, Any]]:
    cases = []
    with open(path, "r", encoding="utf-8") as f:
        for ln in f:
            ln = ln.strip()
            if not ln:
                continue
            cases.append(json.loads(ln))
    return cases


def _first_rank(hits: List[ConceptRef], expected: List[str], k: int):
    wanted = {e.strip().lower() for e in expected}
    for i, h in enumerate(hits[:k], start=1):
        if h.name.lower() in wanted:
            return i
    return None


def evaluate(sheet: CheatSheet, gold: List[Dict[str, Any]], k: int = 10) -> Dict[str, Any]:
    modes = {"keyword": sheet.search, "ranked": lambda q: sheet.rank(q, top_k=k)}
    summary: Dict[str, Any] = {"cases": len(gold), "k": k, "modes": {}}
    for mode, fn in modes.items():
        hit_flags, mrr_vals, latencies, failed = [], [], [], []
        for g in gold:
            t0 = time.perf_counter()
            hits = fn(g["query"])
            latencies.append((time.perf_counter() - t0) * 1000)
            rank = _first_rank(hits, g.get("expected", []), k)
            hit_flags.append(1 if rank else 0)
            mrr_vals.append(0.0 if rank is None else 1.0 / rank)
            if rank is None:
                failed.append(g.get("qid") or g["query"])
        summary["modes"][mode] = {
            "recall_at_k": sum(hit_flags) / max(1, len(hit_flags)),
            "mrr_at_k": sum(mrr_vals) / max(1, len(mrr_vals)),
            "latency_p50_ms": statistics.median(latencies) if latencies else 0.0,
            "failed": failed,
        }
    return summary


def main():
    ap = argparse.ArgumentParser(description="Measure search quality against a gold set.")
    ap.add_argument("--gold", required=True, help="Path to gold.jsonl ({query, expected: [names]})")
    ap.add_argument("--config", default="config.yaml")
    ap.add_argument("--doc", default=None, help="Override the cheat-sheet document")
    ap.add_argument("--k", type=int, default=10, help="Cut-off for recall / MRR")
    args = ap.parse_args()

    cfg = load_config(args.config)
    sheet = catalog_from_config(cfg, document=args.doc)
    gold = _load_gold(Path(args.gold))
    summary = evaluate(sheet, gold, k=args.k)

    print("=== EVAL SUMMARY ===")
    print(f"Cases: {summary['cases']}")
    for mode, m in summary["modes"].items():
        print(f"\n[{mode}]")
        print(f"Recall@{args.k}: {m['recall_at_k']:.3f}")
        print(f"MRR@{args.k}:    {m['mrr_at_k']:.3f}")
        print(f"Latency p50:  {m['latency_p50_ms']:.2f} ms")
        if m["failed"]:
            print("Failed: " + ", ".join(m["failed"]))


if __name__ == "__main__":
    main()
