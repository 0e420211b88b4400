# plan_cli.py
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from errors import TreatmentPlanError
from fee_schedule import FeeScheduleStore
from log_config import configure_logging
from models import TreatmentPlan
from plan_parser import parse_treatment_plan_pdf
from plan_pdf import write_treatment_plan_pdf
from settings_store import SettingsStore, TemplateSettingsStore

logger = logging.getLogger(__name__)


def _cmd_generate(args, store: SettingsStore) -> int:
    settings = TemplateSettingsStore(store).load()
    try:
        with open(args.plan, "r", encoding="utf-8") as f:
            plan = TreatmentPlan.from_dict(json.load(f))
        out = write_treatment_plan_pdf(plan, settings, args.output)
    except (TreatmentPlanError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(out)
    return 0


def _cmd_parse(args, store: SettingsStore) -> int:
    result = parse_treatment_plan_pdf(args.pdf)
    for w in result.warnings:
        print(f"Warning: {w}", file=sys.stderr)
    if not result.success:
        for issue in result.errors:
            print(f"Error ({issue.field}): {issue.message}", file=sys.stderr)
        return 1

    payload = result.data.to_treatment_plan(args.fallback_location).to_dict()
    text = json.dumps(payload, indent=2)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
    else:
        print(text)
    return 0


def _cmd_fees(args, store: SettingsStore) -> int:
    fees = FeeScheduleStore(store)
    if args.action == "reset":
        fees.reset_to_default()
    elif fees.update_available():
        print("A newer default fee schedule is available (run: fees reset)", file=sys.stderr)
    for entry in fees.get_all():
        print(f"{entry.code}\t{entry.fee}\t{entry.description}")
    return 0


def _cmd_settings(args, store: SettingsStore) -> int:
    templates = TemplateSettingsStore(store)
    settings = templates.reset_to_default() if args.action == "reset" else templates.load()
    print(json.dumps(settings.to_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="treatment-plan", description="Dental treatment plan PDFs")
    parser.add_argument("--settings-file", help="Override the persisted settings JSON file")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING...")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Render a plan JSON file to PDF")
    gen.add_argument("plan", help="Treatment plan JSON")
    gen.add_argument("-o", "--output", help="Output PDF (default: exports folder)")
    gen.set_defaults(func=_cmd_generate)

    imp = sub.add_parser("parse", help="Recover a plan from a previously generated PDF")
    imp.add_argument("pdf")
    imp.add_argument("-o", "--output", help="Write the plan JSON here instead of stdout")
    imp.add_argument("--fallback-location", default="essendon")
    imp.set_defaults(func=_cmd_parse)

    fees = sub.add_parser("fees", help="Show or reset the fee schedule")
    fees.add_argument("action", choices=["list", "reset"], nargs="?", default="list")
    fees.set_defaults(func=_cmd_fees)

    st = sub.add_parser("settings", help="Show or reset template settings")
    st.add_argument("action", choices=["show", "reset"], nargs="?", default="show")
    st.set_defaults(func=_cmd_settings)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level.upper() if args.log_level else None)
    store = SettingsStore(args.settings_file)
    return args.func(args, store)


if __name__ == "__main__":
    sys.exit(main())
