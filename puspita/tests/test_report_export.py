# puspita/tests/test_report_export.py
# Pytest tests for HTML rendering, workbook wrapping, file output and the report CLI.

import pytest
import os
from datetime import date

from utils.report_assembler import build_detail_table, build_summary_table, build_nutrition_summary_table
from utils.report_export import (
    is_text_column,
    render_detail_table_html,
    render_summary_table_html,
    render_nutrition_summary_table_html,
    wrap_excel_workbook,
    build_report_filename,
    write_report_file,
    get_report_template,
    is_nutrition_summary,
    generate_report_document,
    generate_participant_history_html,
)
from config import app_config
import generate_report

TEXT_CELL = "<td style=\"mso-number-format:'\\@'\">"


# --- Table Rendering ---
def test_is_text_column():
    assert is_text_column("nik")
    assert is_text_column("survei_nomorKartuKeluarga")
    assert not is_text_column("nama")
    assert not is_text_column("nik_ibu"), "Only the exact 'nik' id is forced to text."

def test_render_detail_table_html(sample_participants_main):
    detail_df = build_detail_table(sample_participants_main, ["nama", "nik", "survei_nomorKartuKeluarga"])
    table_html = render_detail_table_html(detail_df)
    assert table_html.startswith('<table border="1">')
    assert "<th>Nama</th><th>NIK</th><th>Survei: No KK</th>" in table_html
    assert table_html.count("<tr>") == len(sample_participants_main), "One body row per participant."
    assert table_html.count(TEXT_CELL) == 2 * len(sample_participants_main)
    assert f"{TEXT_CELL}3328011234567890</td>" in table_html
    assert "Joko &lt;Kecil&gt;" in table_html, "Cell text must be HTML-escaped."

def test_render_detail_table_html_empty_frame():
    table_html = render_detail_table_html(build_detail_table([], ["nama", "nik"]))
    assert "<th>Nama</th><th>NIK</th>" in table_html
    assert "<tbody></tbody>" in table_html

def test_render_summary_table_html(sample_participants_main):
    summary_df = build_summary_table(sample_participants_main, ["jumlah_peserta", "hipertensi"])
    table_html = render_summary_table_html(summary_df)
    assert '<th rowspan="2" style="vertical-align: middle; padding: 5px;">Nama Posyandu</th>' in table_html
    assert '<th colspan="3" style="padding: 5px;">Hipertensi</th>' in table_html
    assert table_html.count('<th style="padding: 5px;">L</th>') == 2
    assert table_html.count("<tr>") == 2 + 3, "Two header rows, two facilities and the TOTAL row."
    total_row = table_html.split('<td style="padding: 5px;">TOTAL</td>')[1].split("</tr>")[0]
    assert total_row.count("<td") == 6
    assert ">6</td>" in total_row, "Grand total of participants."

def test_render_summary_table_html_bolds_facility_named_like_total_row():
    participants = [{"nama": "X", "jenis_kelamin": "Laki-laki", "nama_posyandu": "TOTAL"}]
    table_html = render_summary_table_html(build_summary_table(participants, ["jumlah_peserta"]))
    rows = table_html.split("<tbody>")[1].split("</tr>")
    assert 'font-weight: bold;">1</td>' in rows[0], "A facility row keeps its bold Total cell."
    assert "font-weight: bold" not in rows[1], "Only the last row is the grand total."

def test_render_nutrition_summary_table_html(sample_participants_main):
    summary_df = build_nutrition_summary_table(sample_participants_main, ["stunting"])
    table_html = render_nutrition_summary_table_html(summary_df)
    span = (len(app_config.AGE_GROUPS) + 1) * 3
    assert '<th rowspan="3"' in table_html
    assert f'<th colspan="{span}" style="padding: 5px;">Stunting (Pendek/Sangat Pendek)</th>' in table_html
    assert '<th colspan="3" style="padding: 5px;">0-6 bln</th>' in table_html
    assert table_html.count(">Jml</th>") == len(app_config.AGE_GROUPS)
    assert table_html.count("<tr>") == 3 + 3


# --- Workbook & Files ---
def test_wrap_excel_workbook():
    document = wrap_excel_workbook("<table></table>")
    assert document.startswith('<html xmlns:o="urn:schemas-microsoft-com:office:office"')
    assert 'xmlns:x="urn:schemas-microsoft-com:office:excel"' in document
    assert "<!--[if gte mso 9]>" in document and "<![endif]-->" in document
    assert "<x:Name>Laporan PUSPITA</x:Name>" in document
    assert "<x:DisplayGridlines/>" in document
    assert "<body>\n<table></table>\n</body>" in document
    assert "<x:Name>Rekap</x:Name>" in wrap_excel_workbook("", sheet_name="Rekap")

def test_build_report_filename():
    assert build_report_filename("gizi", date(2024, 2, 1)) == "laporan_puspita_gizi_2024-02-01.xls"
    assert build_report_filename("ptm").endswith(f"_{date.today().strftime('%Y-%m-%d')}.xls")

def test_write_report_file(tmp_path):
    output_dir = tmp_path / "nested" / "reports"
    path = write_report_file("<html>Laporan Ñ</html>", str(output_dir), "laporan.xls")
    assert path == os.path.join(str(output_dir), "laporan.xls")
    with open(path, encoding="utf-8") as f:
        assert f.read() == "<html>Laporan Ñ</html>"


# --- Report Orchestration ---
def test_template_lookup_and_variant_selection():
    assert get_report_template("gizi")["format"] == "detail"
    assert get_report_template("tidak_ada") is None
    assert is_nutrition_summary(get_report_template("rekap_gizi"))
    assert not is_nutrition_summary(get_report_template("rekap_ptm"))
    assert not is_nutrition_summary(get_report_template("gizi")), "The detail nutrition template stays a detail report."
    assert is_nutrition_summary({"id": "gizi", "format": "summary"})

def test_generate_detail_report_document(sample_participants_main):
    document = generate_report_document(sample_participants_main, get_report_template("gizi"), month="2024-02")
    assert "<x:ExcelWorkbook>" in document
    assert "Budi Santoso" in document and "Siti Aminah" in document
    assert "Joko" not in document, "No January-only toddlers in a February report."
    assert "Ahmad" not in document, "Adults are outside the toddler template."
    assert "Berat badan kurang" in document

def test_generate_detail_report_uses_month_snapshot(sample_participants_main):
    document = generate_report_document(sample_participants_main, get_report_template("gizi"), month="2024-01")
    assert "<td>64</td>" in document, "Budi's January height comes from the January record."

def test_generate_full_report_lists_every_column(sample_participants_main):
    document = generate_report_document(sample_participants_main, get_report_template("lengkap"))
    assert document.count("<th>") == 69

def test_generate_summary_report_documents(sample_participants_main):
    ptm_document = generate_report_document(sample_participants_main, get_report_template("rekap_ptm"))
    assert '<th rowspan="2"' in ptm_document
    assert "Saadiyah 1" in ptm_document and "Melati" not in ptm_document
    gizi_document = generate_report_document(sample_participants_main, get_report_template("rekap_gizi"))
    assert '<th rowspan="3"' in gizi_document

def test_generate_report_document_without_matches(sample_participants_main):
    with pytest.raises(ValueError):
        generate_report_document(sample_participants_main, get_report_template("bumil"), desa="Kupu")


# --- Participant History ---
def test_generate_participant_history_html(participant_by_name):
    history_html = generate_participant_history_html(participant_by_name("Budi"))
    assert "<title>Laporan Riwayat Budi Santoso</title>" in history_html
    assert history_html.count("<tr>") == 1 + 3
    assert history_html.index("10 Desember 2023") < history_html.index("12 Januari 2024") < history_html.index("10 Februari 2024"), \
        "Records are listed oldest first."
    assert "<td>BCG, Polio 1</td>" in history_html
    assert "<td>Kontrol gizi</td>" in history_html
    assert "<td>3 bulan</td>" in history_html, "Age at the December measurement."

def test_generate_participant_history_html_escapes_and_defaults(participant_by_name):
    history_html = generate_participant_history_html(participant_by_name("Joko"))
    assert "Laporan Riwayat Joko &lt;Kecil&gt;" in history_html
    assert "<td>-</td>" in history_html
    empty_html = generate_participant_history_html({"nama": "Baru"})
    assert "<tbody></tbody>" in empty_html


# --- Command Line ---
def test_cli_writes_summary_report(participants_json_file, tmp_path):
    output_dir = tmp_path / "out"
    exit_code = generate_report.main(["--input", participants_json_file, "--template", "rekap_ptm", "--output-dir", str(output_dir)])
    assert exit_code == 0
    expected = output_dir / build_report_filename("rekap_ptm")
    assert expected.exists()
    assert "Hipertensi" in expected.read_text(encoding="utf-8")

def test_cli_writes_participant_history(participants_json_file, tmp_path):
    exit_code = generate_report.main(["--input", participants_json_file, "--participant-nik", "3328010101230001",
                                      "--output-dir", str(tmp_path)])
    assert exit_code == 0
    written = [name for name in os.listdir(tmp_path) if name.startswith("riwayat_3328010101230001")]
    assert len(written) == 1

def test_cli_reports_failures(participants_json_file, tmp_path):
    assert generate_report.main(["--input", participants_json_file, "--template", "bumil", "--desa", "Kupu",
                                 "--output-dir", str(tmp_path)]) == 1
    assert generate_report.main(["--input", str(tmp_path / "missing.json"), "--output-dir", str(tmp_path)]) == 1
    assert generate_report.main(["--input", participants_json_file, "--participant-nik", "000",
                                 "--output-dir", str(tmp_path)]) == 1
