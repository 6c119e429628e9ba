import json
from dataclasses import asdict
from pathlib import Path

def write_json_report(report, out_path: str | Path) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    payload = asdict(report)
    # properties are not fields; keep the decision visible in the JSON
    if hasattr(report, "exit_code"):
        payload["exit_code"] = report.exit_code
    if hasattr(report, "tally"):
        payload["verdict"] = report.tally.verdict

    with out_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False, default=str)

    return out_path
