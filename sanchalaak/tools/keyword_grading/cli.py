#!/usr/bin/env python3
"""Command-line interface for keyword extraction and batch evaluation."""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

import yaml

from sanchalaak.errors import GradingError, InsufficientKeywords
from sanchalaak.libs.config_loader import get_config, load_all_configs, load_configs
from sanchalaak.libs.file_parser import find_submission_files, load_submission_files, parse_path
from .aggregator import aggregate
from .batch_evaluator import BatchEvaluator, SubmissionOutcome, submissions_from_parsed
from .models import KeywordSet, make_record_id
from .report import write_report_xlsx, write_rows_csv, write_summary_yaml
from .store import RecordStore

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
LOG = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Extract keywords from an assignment problem and grade submissions against them',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract keywords and save them for later runs
  grade-sanchalaak extract --problem problem.txt --output keywords.yaml

  # Evaluate every file in a directory, extracting keywords first
  grade-sanchalaak evaluate --problem problem.txt --submissions hw/

  # Reuse saved keywords and write CSV and Excel reports
  grade-sanchalaak evaluate --keywords keywords.yaml --submissions hw/ --csv results.csv --xlsx results.xlsx
        """
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        action='append',
        default=None,
        help='YAML config file(s) to load instead of the config/ directory'
    )
    parser.add_argument(
        '--model', '-m',
        type=str,
        default=None,
        help='Model to use (overrides config value)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    extract = subparsers.add_parser('extract', help='Extract keywords from a problem statement')
    extract.add_argument('--problem', '-p', type=Path, required=True,
                         help='Problem statement file (.txt, .pdf, .docx or .xlsx)')
    extract.add_argument('--output', '-o', type=Path, default=None,
                         help='Write the keywords to this YAML file')

    evaluate = subparsers.add_parser('evaluate', help='Evaluate a directory of submissions')
    source = evaluate.add_mutually_exclusive_group(required=True)
    source.add_argument('--problem', '-p', type=Path,
                        help='Problem statement file; keywords are extracted from it first')
    source.add_argument('--keywords', '-k', type=Path,
                        help='YAML file with a saved keyword list')
    evaluate.add_argument('--submissions', '-s', type=Path, required=True,
                          help='Directory containing submission files')
    evaluate.add_argument('--summary', '-o', type=Path, default=None,
                          help='Summary YAML path (default: evaluation_summary_TIMESTAMP.yaml '
                               'in the submissions directory)')
    evaluate.add_argument('--csv', type=Path, default=None, help='Also write a CSV report')
    evaluate.add_argument('--xlsx', type=Path, default=None, help='Also write an Excel report')
    evaluate.add_argument('--store', type=Path, default=None,
                          help='Directory where each evaluation record is saved')
    evaluate.add_argument('--max-concurrent', '-t', type=int, default=None,
                          help='Maximum number of concurrent evaluations (overrides config value)')
    return parser


def load_keywords_file(path: Path, min_count: int = 0) -> KeywordSet:
    """
    Load a saved keyword list.

    Raises:
        ValueError: If the file holds neither a list nor a 'keywords' key
        InsufficientKeywords: If fewer than min_count usable keywords remain
    """
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    if isinstance(data, dict):
        data = data.get('keywords')
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of keywords or a 'keywords' key")
    keywords = KeywordSet.from_terms(data)
    if len(keywords) < min_count:
        raise InsufficientKeywords(len(keywords), min_count)
    return keywords


def run_extract(args, configs) -> int:
    problem = parse_path(args.problem).text
    evaluator = BatchEvaluator(configs=configs, model=args.model)
    keywords = asyncio.run(evaluator.extract_keywords_async(problem))

    print(f"Extracted {len(keywords)} keywords:")
    for keyword in keywords:
        print(f"  - {keyword}")

    if args.output:
        with open(args.output, 'w') as f:
            yaml.dump({'keywords': keywords.as_list()}, f, default_flow_style=False, sort_keys=False)
        print(f"Keywords saved to: {args.output}")
    return 0


def run_evaluate(args, configs) -> int:
    if not args.submissions.is_dir():
        LOG.error(f"Submissions directory does not exist: {args.submissions}")
        return 1

    store = RecordStore(args.store) if args.store else None
    evaluator = BatchEvaluator(
        configs=configs,
        model=args.model,
        max_concurrent=args.max_concurrent,
        store=store,
    )

    if args.keywords:
        keywords = load_keywords_file(args.keywords, min_count=evaluator.extractor.min_count)
    else:
        problem = parse_path(args.problem).text
        keywords = asyncio.run(evaluator.extract_keywords_async(problem))
    LOG.info(f"Using {len(keywords)} keywords")

    parsed, file_errors = load_submission_files(
        find_submission_files(args.submissions),
        max_files=get_config("files.max_files", configs, default=100),
        max_file_bytes=get_config("files.max_file_bytes", configs, default=10 * 1024 * 1024),
    )
    submissions = submissions_from_parsed(parsed)
    if not submissions and not file_errors:
        LOG.error(f"No submission files found in {args.submissions}")
        return 1

    outcomes = evaluator.evaluate_all(submissions, keywords)
    outcomes += [
        SubmissionOutcome.failed(make_record_id(e.filename), e, e.filename) for e in file_errors
    ]
    report = aggregate(outcomes, max_score=evaluator.scorer.max_points)

    if args.summary is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        summary_path = args.submissions / f"evaluation_summary_{timestamp}.yaml"
    else:
        summary_path = args.summary

    write_summary_yaml(report, summary_path, keywords)
    if args.csv:
        write_rows_csv(report.rows, args.csv)
    if args.xlsx:
        write_report_xlsx(report, args.xlsx, keywords)

    summary = report.summary
    print(f"\n{'='*60}")
    print("Batch Evaluation Complete")
    print(f"{'='*60}")
    print(f"Total submissions: {summary.total}")
    print(f"Successfully evaluated: {summary.count}")
    print(f"Failed: {summary.failed_count}")
    print(f"Average score: {summary.average_score:.1f}/{summary.max_score:g}")
    print(f"Keyword-only warnings: {summary.low_effort_count}")

    if summary.count:
        print("\nScores:")
        for row in report.rows:
            if row.status == "evaluated":
                flag = "  [keyword-only]" if row.is_low_effort else ""
                print(f"  {row.filename}: {row.total_score:g}/{row.max_score:g} "
                      f"({row.matched_count}/{len(keywords)} keywords){flag}")

    failed = [row for row in report.rows if row.status == "failed"]
    if failed:
        print("\nFailed submissions:")
        for row in failed:
            print(f"  {row.filename or row.submission_id}: {row.error}")

    print(f"\nSummary saved to: {summary_path}")
    return 0


def main():
    """Main entry point for the grade-sanchalaak command."""
    args = build_parser().parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        if args.config:
            configs = load_configs(*[str(p) for p in args.config])
        else:
            configs = load_all_configs()
    except Exception as e:
        LOG.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    handlers = {'extract': run_extract, 'evaluate': run_evaluate}
    try:
        code = handlers[args.command](args, configs)
    except GradingError as e:
        LOG.error(f"{args.command} failed: {e}")
        print(f"\nError: {e.user_message}")
        sys.exit(1)
    except ValueError as e:
        LOG.error(f"{args.command} failed: {e}")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
