"""Write batch reports as YAML, CSV and Excel files."""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List

import yaml
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

from .aggregator import BatchReport, ExportRow
from .models import KeywordSet

LOG = logging.getLogger(__name__)

RESULT_HEADERS = {
    'submission_id': 'Submission',
    'filename': 'Filename',
    'status': 'Status',
    'total_score': 'Total Score',
    'max_score': 'Max Score',
    'keyword_coverage': 'Keyword Coverage (%)',
    'matched_count': 'Keywords Matched',
    'missing_count': 'Keywords Missing',
    'is_low_effort': 'Keyword-Only Warning',
    'feedback': 'Feedback',
    'warning': 'Warning',
    'error': 'Error',
}


def _columns(rows: Iterable[ExportRow]) -> List[str]:
    """Column order: fixed fields, then rubric dimensions in first-seen order."""
    columns: List[str] = []
    for row in rows:
        for key in row.to_dict():
            if key not in columns:
                columns.append(key)
    trailing = ['feedback', 'warning', 'error']
    return [c for c in columns if c not in trailing] + trailing


def write_summary_yaml(report: BatchReport, output_path: Path, keywords: KeywordSet = None):
    """
    Save the batch summary and every row to a YAML file.

    Args:
        report: Aggregated batch report
        output_path: Path to save summary file
        keywords: Keyword set the batch was scored against
    """
    summary = {'timestamp': datetime.now().isoformat()}
    summary.update(report.summary.to_dict())

    data = {'grading_summary': summary}
    if keywords is not None:
        data['keywords'] = keywords.as_list()
    data['submissions'] = [row.to_dict() for row in report.rows]

    with open(output_path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    LOG.info(f"Summary saved to {output_path}")


def write_rows_csv(rows: List[ExportRow], output_path: Path):
    """Write one CSV line per submission."""
    columns = _columns(rows)
    with open(output_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=columns, restval='')
        writer.writeheader()
        for row in rows:
            values = row.to_dict()
            writer.writerow({k: '' if v is None else v for k, v in values.items()})
    LOG.info(f"CSV report saved to {output_path}")


def write_report_xlsx(report: BatchReport, output_path: Path, keywords: KeywordSet = None):
    """Write a workbook with a Summary sheet and a Results sheet."""
    summary = report.summary
    wb = Workbook()

    ws = wb.active
    ws.title = "Summary"
    ws.append(["Grade Sanchalaak - Assignment Evaluation Report"])
    ws["A1"].font = Font(bold=True, size=14)
    ws.append(["Generated on:", datetime.now().strftime("%Y-%m-%d")])
    ws.append(["Total Submissions:", summary.total])
    ws.append(["Evaluated:", summary.count])
    ws.append(["Failed:", summary.failed_count])
    ws.append(["Average Score:", f"{summary.average_score:.1f}/{summary.max_score:g}"])
    ws.append(["Keyword-Only Warnings:", summary.low_effort_count])
    for grade, count in summary.grade_distribution.items():
        ws.append([f"Grade {grade}:", count])
    if keywords is not None:
        ws.append([])
        ws.append(["Extracted Keywords:"])
        ws.append([", ".join(keywords)])
    ws.column_dimensions["A"].width = 28

    results = wb.create_sheet("Results")
    columns = _columns(report.rows)
    results.append([RESULT_HEADERS.get(c, c.replace('_', ' ').title()) for c in columns])
    header_fill = PatternFill(start_color="3B82F6", end_color="3B82F6", fill_type="solid")
    for cell in results[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", wrap_text=True)

    for row in report.rows:
        values = row.to_dict()
        line = []
        for column in columns:
            value = values.get(column)
            if column == 'is_low_effort' and value is not None:
                value = "Yes" if value else "No"
            line.append("" if value is None else value)
        results.append(line)

    wb.save(output_path)
    LOG.info(f"Excel report saved to {output_path}")
