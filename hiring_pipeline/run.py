"""Main pipeline runner: validates inputs and executes the HM analytics pipeline."""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

import pandas as pd
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from hiring_pipeline.config import load_pipeline_config
from hiring_pipeline.domains import hiring_managers

type DomainResult = dict[str, bool | str | int]

console = Console()

DOMAINS = {
    "hiring_managers": hiring_managers,
}


def validate_all(export_dir: Path) -> list[DomainResult]:
    results = []
    for name, module in DOMAINS.items():
        match module.validate(export_dir):
            case {"status": "ok", **rest}:
                results.append({"domain": name, "valid": True, **rest})
            case {"status": "error", "message": msg}:
                results.append({"domain": name, "valid": False, "error": msg})
            case _:
                results.append({"domain": name, "valid": False, "error": "Unknown validation result"})
    return results


def print_summary(frames: dict[str, pd.DataFrame]) -> None:
    table = Table(title="HM Analytics Outputs")
    table.add_column("Output")
    table.add_column("Rows", justify="right")
    table.add_column("Highlights")

    reqs = frames["req_rollups"]
    stalled = int((reqs["primary_stall_reason"] != "NONE").sum())
    table.add_row("req_rollups", str(len(reqs)), f"{stalled} stalled")

    hms = frames["hm_rollups"]
    table.add_row("hm_rollups", str(len(hms)), f"{int(hms['total_open_reqs'].sum())} open reqs")

    actions = frames["pending_actions"]
    overdue = int((actions["days_overdue"] > 0).sum())
    table.add_row("pending_actions", str(len(actions)), f"{overdue} past due")

    console.print(table)


def check_outputs(frames: dict[str, pd.DataFrame], strict: bool) -> bool:
    # great_expectations is an optional extra
    from hiring_pipeline.validation.expectations import run_output_expectations

    results = [run_output_expectations(name, df, strict=strict) for name, df in frames.items()]
    return all(r["status"] != "failed" for r in results)


def main():
    parser = argparse.ArgumentParser(description="Run the hiring-manager analytics pipeline")
    parser.add_argument("--env", default="development", help="production, staging or development")
    parser.add_argument("--input", type=Path, help="Override the ATS export directory")
    parser.add_argument("--as-of", type=pd.Timestamp, help="Snapshot instant (defaults to now, UTC)")
    parser.add_argument("--stage-map", type=Path, help="TOML stage mapping file")
    parser.add_argument("--validate", action="store_true", help="Only validate inputs, don't run")
    parser.add_argument("--check-outputs", action="store_true", help="Run expectation suites on outputs")
    parser.add_argument("--strict", action="store_true", help="Treat any failed expectation as fatal")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(message)s", handlers=[RichHandler(console=console)])

    config = load_pipeline_config(args.env)
    export_dir = args.input or config.input_dir

    if args.validate:
        results = validate_all(export_dir)
        table = Table(title="Validation Results")
        table.add_column("Domain")
        table.add_column("Valid")
        table.add_column("Details")

        for r in results:
            status = "[green]✓[/green]" if r["valid"] else "[red]✗[/red]"
            detail = r.get("error", "OK")
            table.add_row(r["domain"], status, detail)

        console.print(table)

        if not all(r["valid"] for r in results):
            sys.exit(1)
        return

    if args.input:
        config = replace(config, input_dir=args.input)

    console.print(f"[bold]Running HM analytics ({args.env})...[/bold]")
    frames = hiring_managers.run(config, as_of=args.as_of, stage_map=args.stage_map)
    print_summary(frames)

    if args.check_outputs and not check_outputs(frames, args.strict):
        sys.exit(1)


if __name__ == "__main__":
    main()
