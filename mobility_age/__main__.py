#!/usr/bin/env python3
"""Command line entry point: ``python -m mobility_age {score,history,prompt}``."""

from __future__ import annotations

import dataclasses
import json
import logging
import sys
from typing import List, Optional

from .config import build_engine, configure_logging, get_settings
from .errors import HistoryStoreError, MobilityAgeError, RetryableInputError
from .history import FileHistoryStore
from .poses import build_report_prompt
from .summary import build_assessment_record

logger = logging.getLogger(__name__)


def _read_report(path: str) -> str:
    if path == '-':
        return sys.stdin.read()
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def _cmd_score(args, settings) -> int:
    if args.format:
        settings = dataclasses.replace(settings, report_format=args.format)
    engine = build_engine(settings)
    try:
        report = _read_report(args.report)
    except OSError as exc:
        print(f'Scoring failed: cannot read report {args.report}: {exc}', file=sys.stderr)
        return 1
    try:
        outcome = engine.parse_report(report, args.pose, args.age)
    except RetryableInputError as exc:
        print(f'Retake the photo: {exc.reason}', file=sys.stderr)
        return 2
    except MobilityAgeError as exc:
        print(f'Scoring failed: {exc}', file=sys.stderr)
        return 1
    print(json.dumps(outcome.model_dump(mode='json'), ensure_ascii=False, indent=2))
    if args.save:
        record = build_assessment_record([outcome], outcome.biological_age)
        try:
            FileHistoryStore(settings.history_path).append(record)
        except HistoryStoreError as exc:
            print(f'Saving failed: {exc}', file=sys.stderr)
            return 1
    return 0


def _cmd_history(args, settings) -> int:
    records = FileHistoryStore(settings.history_path).list_records()
    print(json.dumps([r.model_dump(mode='json') for r in records], ensure_ascii=False, indent=2))
    return 0


def _cmd_prompt(args, settings) -> int:
    try:
        print(build_report_prompt(args.pose, args.age))
    except MobilityAgeError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    import argparse
    ap = argparse.ArgumentParser(prog='mobility_age', description='Score mobility pose reports into a mobility age')
    ap.add_argument('--history-path', default=None, help='History JSON file (default: MOBILITY_AGE_HISTORY_PATH)')
    ap.add_argument('--log-level', default=None, help='Logging level (default: MOBILITY_AGE_LOG_LEVEL)')
    sub = ap.add_subparsers(dest='command', required=True)

    sp = sub.add_parser('score', help='Score one report')
    sp.add_argument('report', help="Report text file, or '-' for stdin")
    sp.add_argument('--pose', required=True, help='Pose, e.g. deep_squat or "Deep Squat"')
    sp.add_argument('--age', required=True, type=int, help='Biological age in years')
    sp.add_argument('--format', choices=('text', 'json'), default=None, help='Report format')
    sp.add_argument('--save', action='store_true', help='Append the result to the history file')
    sp.set_defaults(func=_cmd_score)

    hp = sub.add_parser('history', help='Print stored assessments')
    hp.set_defaults(func=_cmd_history)

    pp = sub.add_parser('prompt', help='Print the report generator prompt for a pose')
    pp.add_argument('--pose', required=True)
    pp.add_argument('--age', required=True, type=int)
    pp.set_defaults(func=_cmd_prompt)

    args = ap.parse_args(argv)

    settings = get_settings()
    if args.history_path:
        settings = dataclasses.replace(settings, history_path=args.history_path)
    configure_logging(args.log_level or settings.log_level)
    logging.captureWarnings(True)

    return args.func(args, settings)


if __name__ == '__main__':
    sys.exit(main())
