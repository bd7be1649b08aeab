# puspita/generate_report.py
# Command-line entry point: builds a PUSPITA report workbook or a participant history page.
"""
Generate a PUSPITA report file.

Usage:
    python generate_report.py --template gizi --month 2024-02
    python generate_report.py --template rekap_ptm --desa Kupu --output-dir reports
    python generate_report.py --participant-nik 3328000000000001
"""

import sys
import argparse
import logging
from datetime import date
from typing import List, Optional

from config import app_config
from utils.core_data_processing import load_participants
from utils.report_export import (
    get_report_template,
    generate_report_document,
    generate_participant_history_html,
    build_report_filename,
    write_report_file,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    template_ids = [t["id"] for t in app_config.DEFAULT_REPORT_TEMPLATES]
    parser = argparse.ArgumentParser(description=f"{app_config.APP_NAME} report generator")
    parser.add_argument("--input", "-i", default=app_config.PARTICIPANTS_JSON,
                        help=f"Participants JSON file (default: {app_config.PARTICIPANTS_JSON})")
    parser.add_argument("--template", "-t", default=template_ids[0], choices=template_ids,
                        help="Report template id")
    parser.add_argument("--month", default=app_config.FILTER_ALL,
                        help="Reporting month as YYYY-MM, or 'semua'")
    parser.add_argument("--desa", default=app_config.FILTER_ALL, choices=[app_config.FILTER_ALL] + app_config.DESA_OPTIONS,
                        help="Village filter, or 'semua'")
    parser.add_argument("--posyandu", default=app_config.FILTER_ALL,
                        help="Posyandu filter (case-insensitive), or 'semua'")
    parser.add_argument("--output-dir", "-o", default=app_config.REPORT_OUTPUT_DIR,
                        help=f"Directory for generated files (default: {app_config.REPORT_OUTPUT_DIR})")
    parser.add_argument("--participant-nik",
                        help="Write the measurement history page of this participant instead of a report")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger.info(f"{app_config.APP_NAME} v{app_config.APP_VERSION}: report generation started.")

    participants = load_participants(args.input, source_context="ReportCLI")
    if not participants:
        logger.error(f"No participants available from {args.input}.")
        return 1

    if args.participant_nik:
        participant = next((p for p in participants if str(p.get('nik')) == args.participant_nik), None)
        if participant is None:
            logger.error(f"No participant with NIK {args.participant_nik}.")
            return 1
        document = generate_participant_history_html(participant)
        filename = f"riwayat_{args.participant_nik}_{date.today().strftime('%Y-%m-%d')}.html"
    else:
        template = get_report_template(args.template)
        try:
            document = generate_report_document(
                participants, template, month=args.month, desa=args.desa, posyandu=args.posyandu,
                source_context="ReportCLI",
            )
        except ValueError as e:
            logger.error(f"Report not generated: {e}")
            return 1
        filename = build_report_filename(args.template)

    try:
        output_path = write_report_file(document, args.output_dir, filename, source_context="ReportCLI")
    except OSError:
        return 1
    print(f"Report saved to: {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
