# puspita/utils/report_export.py
# Renders assembled report tables as Excel-compatible HTML documents and writes them to disk.

import os
import html
import logging
import pandas as pd
from datetime import date
from typing import List, Dict, Any, Optional
from config import app_config
from .core_data_processing import (
    _is_missing,
    filter_participants,
    build_report_snapshots,
    format_date,
    format_detailed_age,
    sort_records_by_date,
    history_records,
)
from .report_definitions import (
    AVAILABLE_COLUMNS,
    AVAILABLE_INDICATORS,
    INDICATOR_LABELS,
    select_catalog_entries,
    _format_scalar,
)
from .report_assembler import (
    build_detail_table,
    detail_header_labels,
    build_summary_table,
    build_nutrition_summary_table,
)

logger = logging.getLogger(__name__)

TEXT_CELL_STYLE = "mso-number-format:'\\@'"
CELL_PADDING = "padding: 5px;"

# --- I. Cell Helpers ---
def _escape(value: Any) -> str:
    if _is_missing(value):
        return ''
    return html.escape(str(value), quote=True)

def is_text_column(column_id: str) -> bool:
    """Columns Excel must keep as text (long identity numbers)."""
    if column_id in app_config.EXPORT_TEXT_COLUMNS:
        return True
    return any(marker in column_id for marker in app_config.EXPORT_TEXT_COLUMN_MARKERS)

def _ordered_level_values(columns: pd.Index, level: int) -> List[str]:
    return list(dict.fromkeys(columns.get_level_values(level)))

# --- II. Table Renderers ---
def render_detail_table_html(detail_df: pd.DataFrame) -> str:
    """Detail report table: a label header row then one row per snapshot."""
    column_ids = [str(c) for c in detail_df.columns]
    labels = detail_header_labels(column_ids)
    header_cells = ''.join(f"<th>{_escape(label)}</th>" for label in labels)
    body_rows = []
    for row in detail_df.itertuples(index=False, name=None):
        cells = []
        for column_id, value in zip(column_ids, row):
            if is_text_column(column_id):
                cells.append(f'<td style="{TEXT_CELL_STYLE}">{_escape(value)}</td>')
            else:
                cells.append(f"<td>{_escape(value)}</td>")
        body_rows.append(f"<tr>{''.join(cells)}</tr>")
    return (
        '<table border="1">'
        f'<thead><tr style="background-color: #f2f2f2; font-weight: bold;">{header_cells}</tr></thead>'
        f"<tbody>{''.join(body_rows)}</tbody>"
        '</table>'
    )

def render_summary_table_html(summary_df: pd.DataFrame) -> str:
    """Facility summary: indicator labels over L/P/Total, one row per facility then TOTAL."""
    indicator_ids = _ordered_level_values(summary_df.columns, 0) if isinstance(summary_df.columns, pd.MultiIndex) else []
    first_header = ''.join(
        f'<th colspan="3" style="{CELL_PADDING}">{_escape(INDICATOR_LABELS.get(ind, ind))}</th>' for ind in indicator_ids
    )
    second_header = ''.join(
        ''.join(f'<th style="{CELL_PADDING}">{_escape(sex)}</th>' for sex in summary_df[ind].columns)
        for ind in indicator_ids
    )
    body_rows = []
    last_position = len(summary_df) - 1
    for position, (facility, row) in enumerate(summary_df.iterrows()):
        # Grand total is always the last row.
        is_total_row = position == last_position
        cells = [f'<td style="{CELL_PADDING}">{_escape(facility)}</td>']
        for ind in indicator_ids:
            for sex, count in row[ind].items():
                bold = not is_total_row and sex == app_config.SUMMARY_ROW_TOTAL_LABEL
                style = f"{CELL_PADDING} font-weight: bold;" if bold else CELL_PADDING
                cells.append(f'<td style="{style}">{int(count)}</td>')
        body_rows.append(f"<tr>{''.join(cells)}</tr>")
    return (
        '<table border="1" style="border-collapse: collapse; width: 100%;">'
        '<thead>'
        f'<tr><th rowspan="2" style="vertical-align: middle; {CELL_PADDING}">{_escape(app_config.SUMMARY_FACILITY_HEADER)}</th>{first_header}</tr>'
        f'<tr>{second_header}</tr>'
        '</thead>'
        f"<tbody>{''.join(body_rows)}</tbody>"
        '</table>'
    )

def render_nutrition_summary_table_html(summary_df: pd.DataFrame) -> str:
    """Age-banded facility summary with a three-row header (indicator, age band, L/P/Jml)."""
    indicator_ids = _ordered_level_values(summary_df.columns, 0) if isinstance(summary_df.columns, pd.MultiIndex) else []
    total_band = app_config.AGE_GROUP_TOTAL_LABEL
    first_header, second_header, third_header = [], [], []
    for ind in indicator_ids:
        bands = _ordered_level_values(summary_df[ind].columns, 0)
        first_header.append(
            f'<th colspan="{len(bands) * 3}" style="{CELL_PADDING}">{_escape(INDICATOR_LABELS.get(ind, ind))}</th>'
        )
        for band in bands:
            shade = " background-color: #d1d5db;" if band == total_band else ''
            second_header.append(f'<th colspan="3" style="{CELL_PADDING}{shade}">{_escape(band)}</th>')
            for sex in summary_df[ind][band].columns:
                shade = ''
                if band == total_band:
                    shade = " background-color: #d1d5db;" if sex == app_config.SUMMARY_ROW_TOTAL_LABEL else " background-color: #e5e7eb;"
                third_header.append(f'<th style="{CELL_PADDING}{shade}">{_escape(sex)}</th>')

    body_rows = []
    for facility, row in summary_df.iterrows():
        cells = [f'<td style="{CELL_PADDING}">{_escape(facility)}</td>']
        for ind in indicator_ids:
            for (band, sex), count in row[ind].items():
                style = CELL_PADDING
                if band == total_band:
                    style += " font-weight: bold; background-color: #e5e7eb;"
                elif sex == app_config.SUMMARY_BAND_COUNT_LABEL:
                    style += " font-weight: bold; background-color: #f9fafb;"
                cells.append(f'<td style="{style}">{int(count)}</td>')
        body_rows.append(f"<tr>{''.join(cells)}</tr>")
    return (
        '<table border="1" style="border-collapse: collapse; width: 100%;">'
        '<thead>'
        f'<tr><th rowspan="3" style="vertical-align: middle; {CELL_PADDING}">{_escape(app_config.SUMMARY_FACILITY_HEADER)}</th>{"".join(first_header)}</tr>'
        f'<tr>{"".join(second_header)}</tr>'
        f'<tr>{"".join(third_header)}</tr>'
        '</thead>'
        f"<tbody>{''.join(body_rows)}</tbody>"
        '</table>'
    )

# --- III. Document & File Output ---
def wrap_excel_workbook(table_html: str, sheet_name: Optional[str] = None) -> str:
    """Office HTML document that spreadsheet applications open as a single worksheet."""
    sheet = _escape(sheet_name or app_config.EXPORT_WORKSHEET_NAME)
    return (
        '<html xmlns:o="urn:schemas-microsoft-com:office:office" '
        'xmlns:x="urn:schemas-microsoft-com:office:excel" '
        'xmlns="http://www.w3.org/TR/REC-html40">\n'
        '<head>\n'
        '<meta http-equiv="Content-Type" content="text/html; charset=utf-8">\n'
        '<!--[if gte mso 9]>\n'
        '<xml>\n'
        '<x:ExcelWorkbook>\n'
        '<x:ExcelWorksheets>\n'
        '<x:ExcelWorksheet>\n'
        f'<x:Name>{sheet}</x:Name>\n'
        '<x:WorksheetOptions>\n'
        '<x:DisplayGridlines/>\n'
        '</x:WorksheetOptions>\n'
        '</x:ExcelWorksheet>\n'
        '</x:ExcelWorksheets>\n'
        '</x:ExcelWorkbook>\n'
        '</xml>\n'
        '<![endif]-->\n'
        '</head>\n'
        '<body>\n'
        f'{table_html}\n'
        '</body>\n'
        '</html>\n'
    )

def build_report_filename(report_type: str, on_date: Optional[date] = None) -> str:
    on_date = on_date or date.today()
    return f"{app_config.EXPORT_FILENAME_PREFIX}_{report_type}_{on_date.strftime('%Y-%m-%d')}.{app_config.EXPORT_FILE_EXTENSION}"

def write_report_file(document: str, output_dir: Optional[str] = None, filename: str = "laporan.xls", source_context: str = "ReportWriter") -> str:
    target_dir = output_dir or app_config.REPORT_OUTPUT_DIR
    output_path = os.path.join(target_dir, filename)
    try:
        os.makedirs(target_dir, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(document)
    except OSError as e:
        logger.error(f"({source_context}) Could not write report to {output_path}: {e}")
        raise
    logger.info(f"({source_context}) Report written to {output_path} ({len(document)} characters).")
    return output_path

# --- IV. Report Orchestration ---
def get_report_template(template_id: str, templates: Optional[List[Dict[str, Any]]] = None) -> Optional[Dict[str, Any]]:
    for template in templates if templates is not None else app_config.DEFAULT_REPORT_TEMPLATES:
        if template.get("id") == template_id:
            return template
    return None

def is_nutrition_summary(template: Dict[str, Any]) -> bool:
    if template.get("format") != "summary":
        return False
    return template.get("id") == app_config.NUTRITION_TEMPLATE_ID or bool(template.get("age_banded"))

def generate_report_document(
    participants: Optional[List[Dict[str, Any]]],
    template: Dict[str, Any],
    month: str = app_config.FILTER_ALL,
    desa: str = app_config.FILTER_ALL,
    posyandu: str = app_config.FILTER_ALL,
    source_context: str = "ReportGenerator"
) -> str:
    """
    Filters participants for the template, builds the month snapshots, assembles
    the detail or summary table and wraps it as a workbook document.

    Raises:
        ValueError: when no participant matches the filters.
    """
    template_id = template.get("id", "custom")
    logger.info(f"({source_context}) Generating '{template_id}' report (month={month}, desa={desa}, posyandu={posyandu}).")
    filtered = filter_participants(
        participants,
        category_filter=template.get("defaultCategory", app_config.FILTER_ALL),
        desa=desa,
        posyandu=posyandu,
        month=month,
        source_context=source_context,
    )
    if not filtered:
        logger.warning(f"({source_context}) No participants matched the filters for '{template_id}'.")
        raise ValueError("Tidak ada data yang cocok dengan filter yang dipilih.")
    snapshots = build_report_snapshots(filtered, month)

    selected = template.get("selectedColumns") or []
    if template.get("format") == "summary":
        indicator_ids = [entry["id"] for entry in select_catalog_entries(AVAILABLE_INDICATORS, selected)]
        if is_nutrition_summary(template):
            table_html = render_nutrition_summary_table_html(build_nutrition_summary_table(snapshots, indicator_ids))
        else:
            table_html = render_summary_table_html(build_summary_table(snapshots, indicator_ids))
    else:
        column_ids = [entry["id"] for entry in select_catalog_entries(AVAILABLE_COLUMNS, selected)]
        table_html = render_detail_table_html(build_detail_table(snapshots, column_ids))
    return wrap_excel_workbook(table_html)

# --- V. Participant History ---
HISTORY_HEADERS = ['Tanggal', 'Usia', 'Berat', 'Tinggi', 'LILA', 'LiKa', 'BB/U', 'TB/U', 'BB/TB',
                   'Naik/Turun', 'Imunisasi', 'Vit A', 'Obat Cacing', 'PKAT', 'Gigi', 'Catatan']

def _dash(value: Any) -> str:
    text = _format_scalar(value)
    return text if text else '-'

def _optional_yes_no(value: Any) -> str:
    if value is True:
        return app_config.YES_LABEL
    if value is False:
        return app_config.NO_LABEL
    return '-'

def _history_row(participant: Dict[str, Any], record: Dict[str, Any]) -> List[str]:
    immunizations = record.get('imunisasi')
    return [
        format_date(record.get('tanggal_pengukuran')),
        format_detailed_age(participant.get('tanggal_lahir'), record.get('tanggal_pengukuran')),
        _dash(record.get('berat_badan')),
        _dash(record.get('tinggi_badan')),
        _dash(record.get('lila')),
        _dash(record.get('lingkar_kepala')),
        _dash(record.get('status_bb_u')),
        _dash(record.get('status_tb_u')),
        _dash(record.get('status_bb_tb')),
        _dash(record.get('status_kenaikan_berat')),
        ', '.join(str(i) for i in immunizations) if isinstance(immunizations, list) and immunizations else '-',
        _dash(record.get('vitaminA')),
        app_config.YES_LABEL if record.get('obatCacing') else '-',
        _optional_yes_no(record.get('sudahPKAT')),
        _optional_yes_no(record.get('gigi_caries')),
        record.get('catatan_pelayanan') or record.get('catatan_pengukuran') or '',
    ]

def generate_participant_history_html(participant: Dict[str, Any]) -> str:
    """Printable measurement history of one participant, oldest record first."""
    history = sort_records_by_date(history_records(participant), descending=False)
    name = _escape(participant.get('nama'))
    header_cells = ''.join(f"<th>{label}</th>" for label in HISTORY_HEADERS)
    rows = ''.join(
        f"<tr>{''.join(f'<td>{_escape(cell)}</td>' for cell in _history_row(participant, record))}</tr>"
        for record in history if isinstance(record, dict)
    )
    logger.debug(f"History document for {participant.get('nama', '?')}: {len(history)} records.")
    return (
        f"<html><head><title>Laporan Riwayat {name}</title>"
        "<style>body { font-family: sans-serif; margin: 2rem; } "
        "table { width: 100%; border-collapse: collapse; font-size: 0.8rem; } "
        "th, td { border: 1px solid #ccc; padding: 8px; }</style></head>"
        f"<body><h1>Laporan Riwayat {name}</h1>"
        f"<table><thead><tr>{header_cells}</tr></thead><tbody>{rows}</tbody></table>"
        "</body></html>"
    )
