# puspita/utils/report_definitions.py
# Column and indicator catalogs, value extraction and indicator evaluation for PUSPITA reports.

import math
import logging
from typing import Dict, Any, Optional, List, Callable
from config import app_config
from .core_data_processing import (
    _is_missing,
    format_date,
    get_category_label,
    calculate_age,
    calculate_age_in_months,
    sort_records_by_date,
    history_records,
    parse_date,
)

logger = logging.getLogger(__name__)

YES_LABEL = getattr(app_config, 'YES_LABEL', 'Ya')
NO_LABEL = getattr(app_config, 'NO_LABEL', 'Tidak')
LIST_SEPARATOR = getattr(app_config, 'LIST_SEPARATOR', '; ')
AGE_GROUPS = getattr(app_config, 'AGE_GROUPS', [])
SURVEY_PREFIX = 'survei_'

# --- I. Column Catalog ---
AVAILABLE_COLUMNS: List[Dict[str, str]] = [
    # Identitas
    {"id": "nama", "label": "Nama", "group": "Identitas"},
    {"id": "nik", "label": "NIK", "group": "Identitas"},
    {"id": "kategori", "label": "Kategori", "group": "Identitas"},
    {"id": "tanggal_lahir", "label": "Tgl Lahir", "group": "Identitas"},
    {"id": "jenis_kelamin", "label": "Jenis Kelamin", "group": "Identitas"},
    {"id": "alamat", "label": "Alamat (Desa)", "group": "Identitas"},
    {"id": "rt", "label": "RT", "group": "Identitas"},
    {"id": "rw", "label": "RW", "group": "Identitas"},
    {"id": "nama_posyandu", "label": "Posyandu", "group": "Identitas"},
    {"id": "no_telepon", "label": "No HP", "group": "Identitas"},
    {"id": "nama_ibu", "label": "Nama Ibu", "group": "Identitas"},
    {"id": "status_pernikahan", "label": "Status Pernikahan", "group": "Identitas"},
    {"id": "status_hamil", "label": "Status Hamil", "group": "Identitas"},
    # Pengukuran
    {"id": "tanggal_pengukuran", "label": "Tgl Ukur/Layanan", "group": "Pengukuran"},
    {"id": "berat_badan", "label": "BB (kg)", "group": "Pengukuran"},
    {"id": "tinggi_badan", "label": "TB (cm)", "group": "Pengukuran"},
    {"id": "lila", "label": "LILA (cm)", "group": "Pengukuran"},
    {"id": "lingkar_kepala", "label": "LiKa (cm)", "group": "Pengukuran"},
    {"id": "lingkar_perut", "label": "Lingkar Perut (cm)", "group": "Pengukuran"},
    {"id": "status_bb_u", "label": "Status BB/U", "group": "Pengukuran"},
    {"id": "status_tb_u", "label": "Status TB/U", "group": "Pengukuran"},
    {"id": "status_bb_tb", "label": "Status BB/TB", "group": "Pengukuran"},
    {"id": "status_kenaikan_berat", "label": "Status Kenaikan BB", "group": "Pengukuran"},
    {"id": "status_bmi", "label": "IMT", "group": "Pengukuran"},
    {"id": "status_kategori_bmi", "label": "Kategori IMT", "group": "Pengukuran"},
    {"id": "status_lila", "label": "Status LILA", "group": "Pengukuran"},
    # Pelayanan
    {"id": "imunisasi", "label": "Imunisasi", "group": "Pelayanan"},
    {"id": "vitaminA", "label": "Vitamin A", "group": "Pelayanan"},
    {"id": "obatCacing", "label": "Obat Cacing", "group": "Pelayanan"},
    {"id": "asiEksklusif", "label": "ASI Eksklusif", "group": "Pelayanan"},
    {"id": "sudahPKAT", "label": "PKAT", "group": "Pelayanan"},
    {"id": "gigi_caries", "label": "Gigi Karies", "group": "Pelayanan"},
    {"id": "tensi", "label": "Tensi", "group": "Pelayanan"},
    {"id": "kesimpulan_tensi", "label": "Kesimpulan Tensi", "group": "Pelayanan"},
    {"id": "pemeriksaanHB", "label": "HB (g/dL)", "group": "Pelayanan"},
    {"id": "kesimpulan_hb", "label": "Kesimpulan HB", "group": "Pelayanan"},
    {"id": "gds", "label": "GDS (mg/dL)", "group": "Pelayanan"},
    {"id": "kesimpulan_gds", "label": "Kesimpulan GDS", "group": "Pelayanan"},
    {"id": "kolesterol", "label": "Kolesterol", "group": "Pelayanan"},
    {"id": "kesimpulan_kolesterol", "label": "Kesimpulan Kolesterol", "group": "Pelayanan"},
    {"id": "asamUrat", "label": "Asam Urat", "group": "Pelayanan"},
    {"id": "kesimpulan_asam_urat", "label": "Kesimpulan Asam Urat", "group": "Pelayanan"},
    {"id": "kb", "label": "Status KB", "group": "Pelayanan"},
    {"id": "tingkatKemandirian", "label": "Tingkat Kemandirian", "group": "Pelayanan"},
    {"id": "tfu", "label": "TFU (cm)", "group": "Pelayanan"},
    {"id": "djj", "label": "DJJ (bpm)", "group": "Pelayanan"},
    {"id": "presentasi", "label": "Presentasi Janin", "group": "Pelayanan"},
    # Skrining
    {"id": "skriningMerokok_merokok", "label": "Skrining: Merokok", "group": "Pelayanan"},
    {"id": "skriningMerokok_terpapar", "label": "Skrining: Terpapar Asap", "group": "Pelayanan"},
    {"id": "skriningTBC_batuk", "label": "Skrining TBC: Batuk", "group": "Pelayanan"},
    {"id": "skriningTBC_demam", "label": "Skrining TBC: Demam", "group": "Pelayanan"},
    {"id": "skriningTBC_beratBadan", "label": "Skrining TBC: BB Turun", "group": "Pelayanan"},
    {"id": "skriningTBC_kontak", "label": "Skrining TBC: Kontak", "group": "Pelayanan"},
    {"id": "skriningIndera_kanan", "label": "Skrining Indera: Kanan", "group": "Pelayanan"},
    {"id": "skriningIndera_kiri", "label": "Skrining Indera: Kiri", "group": "Pelayanan"},
    {"id": "skriningIndera_dengar", "label": "Skrining Indera: Dengar", "group": "Pelayanan"},
    {"id": "skriningJiwa", "label": "Skrining Jiwa", "group": "Pelayanan"},
    # Survei
    {"id": "phbsClassification", "label": "Strata PHBS", "group": "Survei"},
    {"id": "phbsScore", "label": "Skor PHBS", "group": "Survei"},
    {"id": "survei_namaKepalaKeluarga", "label": "Survei: Nama KK", "group": "Survei"},
    {"id": "survei_nomorKartuKeluarga", "label": "Survei: No KK", "group": "Survei"},
    {"id": "survei_sumberAirUtama", "label": "Survei: Sumber Air Utama", "group": "Survei"},
    {"id": "survei_sumberAirMinumUtama", "label": "Survei: Sumber Air Minum", "group": "Survei"},
    {"id": "survei_tersediaJambanKeluarga", "label": "Survei: Ada Jamban", "group": "Survei"},
    {"id": "survei_bangunanBawahJamban", "label": "Survei: Bangunan Bawah Jamban", "group": "Survei"},
    {"id": "survei_tempatSampahTertutup", "label": "Survei: Tempat Sampah Tertutup", "group": "Survei"},
    {"id": "survei_merokokDalamRumah", "label": "Survei: Merokok Dalam Rumah", "group": "Survei"},
    {"id": "survei_jentikNyamuk", "label": "Survei: Ada Jentik", "group": "Survei"},
    {"id": "survei_punyaJKN", "label": "Survei: Punya JKN", "group": "Survei"},
]

# --- II. Indicator Catalog ---
AVAILABLE_INDICATORS: List[Dict[str, str]] = [
    {"id": "jumlah_peserta", "label": "Total Peserta (N)", "group": "Umum"},
    {"id": "jumlah_hadir", "label": "Jumlah Hadir (D)", "group": "Umum"},
    {"id": "stunting", "label": "Stunting (Pendek/Sangat Pendek)", "group": "Gizi Balita"},
    {"id": "wasted", "label": "Gizi Kurang/Buruk (Wasted)", "group": "Gizi Balita"},
    {"id": "underweight", "label": "BB Kurang/Sangat Kurang", "group": "Gizi Balita"},
    {"id": "overweight", "label": "Gizi Lebih/Obesitas", "group": "Gizi Balita"},
    {"id": "naik_bb", "label": "Berat Badan Naik (N)", "group": "Pertumbuhan Balita"},
    {"id": "tidak_naik_bb", "label": "Berat Badan Tidak Naik (T)", "group": "Pertumbuhan Balita"},
    {"id": "2t", "label": "Tidak Naik 2x Berturut (2T)", "group": "Pertumbuhan Balita"},
    {"id": "baru_ditimbang", "label": "Baru Ditimbang (B)", "group": "Pertumbuhan Balita"},
    {"id": "bumil_kek", "label": "Ibu Hamil KEK", "group": "Kesehatan Ibu"},
    {"id": "bumil_anemia", "label": "Ibu Hamil Anemia", "group": "Kesehatan Ibu"},
    {"id": "bumil_risti", "label": "Ibu Hamil Risiko Tinggi (Usia/Lainnya)", "group": "Kesehatan Ibu"},
    {"id": "hipertensi", "label": "Hipertensi", "group": "Penyakit Tidak Menular"},
    {"id": "diabetes", "label": "Diabetes Melitus", "group": "Penyakit Tidak Menular"},
    {"id": "obesitas_dewasa", "label": "Obesitas (Dewasa)", "group": "Penyakit Tidak Menular"},
    {"id": "merokok", "label": "Perokok Aktif", "group": "Faktor Risiko"},
    {"id": "phbs_kurang", "label": "PHBS Pratama/Madya", "group": "PHBS"},
]

COLUMN_LABELS: Dict[str, str] = {c["id"]: c["label"] for c in AVAILABLE_COLUMNS}
INDICATOR_LABELS: Dict[str, str] = {i["id"]: i["label"] for i in AVAILABLE_INDICATORS}

def select_catalog_entries(catalog: List[Dict[str, str]], selected_ids: Optional[List[str]]) -> List[Dict[str, str]]:
    """Catalog entries whose id is selected, in catalog order. No selection means the whole catalog."""
    if not selected_ids:
        return list(catalog)
    wanted = set(selected_ids)
    return [entry for entry in catalog if entry["id"] in wanted]

# --- III. Value Extraction ---
def to_yes_no(value: Any) -> str:
    if value is True:
        return YES_LABEL
    if value is False:
        return NO_LABEL
    return ''

def join_list(value: Any) -> str:
    if not isinstance(value, (list, tuple)):
        return ''
    return LIST_SEPARATOR.join(str(v) for v in value)

def _format_scalar(value: Any) -> str:
    if _is_missing(value):
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)

def _nested(participant: Dict[str, Any], container: str, key: str) -> Any:
    obj = participant.get(container)
    if not isinstance(obj, dict):
        return None
    return obj.get(key)

def _yes_no_field(field: str) -> Callable[[Dict[str, Any]], str]:
    return lambda p: to_yes_no(p.get(field))

def _yes_no_path(container: str, key: str) -> Callable[[Dict[str, Any]], str]:
    return lambda p: to_yes_no(_nested(p, container, key))

def _text_path(container: str, key: str) -> Callable[[Dict[str, Any]], str]:
    return lambda p: _format_scalar(_nested(p, container, key))

# Columns that are not plain scalars on the snapshot.
SPECIAL_COLUMN_EXTRACTORS: Dict[str, Callable[[Dict[str, Any]], str]] = {
    'imunisasi': lambda p: join_list(p.get('imunisasi')),
    'status_hamil': _yes_no_field('status_hamil'),
    'obatCacing': _yes_no_field('obatCacing'),
    'asiEksklusif': _yes_no_field('asiEksklusif'),
    'sudahPKAT': _yes_no_field('sudahPKAT'),
    'gigi_caries': _yes_no_field('gigi_caries'),
    'skriningJiwa': _yes_no_field('skriningJiwa'),
    'skriningMerokok_merokok': _yes_no_path('skriningMerokok', 'merokok'),
    'skriningMerokok_terpapar': _yes_no_path('skriningMerokok', 'terpapar'),
    'skriningTBC_batuk': _yes_no_path('skriningTBC', 'batuk'),
    'skriningTBC_demam': _yes_no_path('skriningTBC', 'demam'),
    'skriningTBC_beratBadan': _yes_no_path('skriningTBC', 'beratBadan'),
    'skriningTBC_kontak': _yes_no_path('skriningTBC', 'kontak'),
    'skriningIndera_kanan': _text_path('skriningIndera', 'penglihatanKanan'),
    'skriningIndera_kiri': _text_path('skriningIndera', 'penglihatanKiri'),
    'skriningIndera_dengar': _text_path('skriningIndera', 'pendengaran'),
}

def _survey_value(participant: Dict[str, Any], column_id: str) -> str:
    key = column_id[len(SURVEY_PREFIX):]
    value = _nested(participant, 'surveiKeluarga', key)
    if isinstance(value, bool):
        return to_yes_no(value)
    if isinstance(value, (list, tuple)):
        return join_list(value)
    return _format_scalar(value)

def get_column_value(participant: Dict[str, Any], column_id: str) -> str:
    """
    Display value of one report column for a participant snapshot.

    Directly-held scalars are formatted by type (category label, Indonesian date,
    Ya/Tidak, text-forced NIK); nested and list-valued columns go through
    SPECIAL_COLUMN_EXTRACTORS and the survey lookup. Unknown ids give ''.
    """
    if not isinstance(participant, dict):
        return ''
    value = participant.get(column_id)
    if column_id in participant and not _is_missing(value) and not isinstance(value, (dict, list, tuple)):
        if column_id == 'kategori':
            return get_category_label(value)
        if 'tanggal' in column_id:
            return format_date(value)
        if isinstance(value, bool):
            return to_yes_no(value)
        if column_id == 'nik':
            return f"{app_config.NIK_TEXT_PREFIX}{value}"
        return _format_scalar(value)

    extractor = SPECIAL_COLUMN_EXTRACTORS.get(column_id)
    if extractor is not None:
        return extractor(participant)
    if column_id.startswith(SURVEY_PREFIX):
        return _survey_value(participant, column_id)
    return ''

# --- IV. Indicator Evaluation ---
def _text(participant: Dict[str, Any], field: str) -> str:
    value = participant.get(field)
    return value if isinstance(value, str) else ''

def _has_value(participant: Dict[str, Any], field: str) -> bool:
    value = participant.get(field)
    return not _is_missing(value) and value != ''

def _contains_any(text: str, tokens: List[str]) -> bool:
    return any(token in text for token in tokens)

def _is_category(participant: Dict[str, Any], *categories: str) -> bool:
    return participant.get('kategori') in categories

def _is_balita(participant: Dict[str, Any]) -> bool:
    return _is_category(participant, app_config.CATEGORY_BALITA)

def _is_pregnant(participant: Dict[str, Any]) -> bool:
    return _is_category(participant, app_config.CATEGORY_IBU_HAMIL)

def _weight_gain_is(status: str) -> Callable[[Dict[str, Any]], bool]:
    return lambda p: _is_balita(p) and p.get('status_kenaikan_berat') == status

def previous_measurement(participant: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    The history record immediately preceding the snapshot's current record.

    History is sorted newest first (ties keep insertion order). The current record is
    the first entry dated on or before the snapshot's measurement date, or the newest
    entry when the snapshot carries no date. Requires at least two history entries.
    """
    history = history_records(participant)
    if len(history) < 2:
        return None
    ordered = sort_records_by_date(history)
    current_index = 0
    current_date = parse_date(participant.get('tanggal_pengukuran'))
    if current_date is not None:
        for idx, record in enumerate(ordered):
            record_date = parse_date(record.get('tanggal_pengukuran'))
            if record_date is not None and record_date <= current_date:
                current_index = idx
                break
    if current_index + 1 >= len(ordered):
        return None
    return ordered[current_index + 1]

def _two_consecutive_not_gained(participant: Dict[str, Any]) -> bool:
    if not _is_balita(participant) or participant.get('status_kenaikan_berat') != app_config.STATUS_WEIGHT_NOT_GAINED:
        return False
    previous = previous_measurement(participant)
    return previous is not None and previous.get('status_kenaikan_berat') == app_config.STATUS_WEIGHT_NOT_GAINED

def _pregnancy_high_risk(participant: Dict[str, Any]) -> bool:
    if not _is_pregnant(participant):
        return False
    age = calculate_age(participant.get('tanggal_lahir'), participant.get('tanggal_pengukuran'))
    if age is not None and (age < app_config.PREGNANCY_RISK_AGE_MIN or age > app_config.PREGNANCY_RISK_AGE_MAX):
        return True
    return app_config.TOKEN_HYPERTENSION in _text(participant, 'kesimpulan_tensi')

def _underweight(participant: Dict[str, Any]) -> bool:
    status = _text(participant, 'status_bb_u')
    return _is_balita(participant) and (app_config.TOKEN_UNDERWEIGHT_SEVERE in status or status == app_config.STATUS_UNDERWEIGHT)

def _overweight(participant: Dict[str, Any]) -> bool:
    return _is_balita(participant) and (
        _contains_any(_text(participant, 'status_bb_tb'), app_config.TOKENS_OVERWEIGHT_BB_TB)
        or _contains_any(_text(participant, 'status_bb_u'), app_config.TOKENS_OVERWEIGHT_BB_U)
    )

INDICATOR_PREDICATES: Dict[str, Callable[[Dict[str, Any]], bool]] = {
    'jumlah_peserta': lambda p: True,
    'jumlah_hadir': lambda p: _has_value(p, 'tanggal_pengukuran') or _has_value(p, 'tanggal_pelayanan'),
    'stunting': lambda p: _is_balita(p) and _contains_any(_text(p, 'status_tb_u'), app_config.TOKENS_STUNTING),
    'wasted': lambda p: _is_balita(p) and _contains_any(_text(p, 'status_bb_tb'), app_config.TOKENS_WASTED),
    'underweight': _underweight,
    'overweight': _overweight,
    'naik_bb': _weight_gain_is(app_config.STATUS_WEIGHT_GAINED),
    'tidak_naik_bb': _weight_gain_is(app_config.STATUS_WEIGHT_NOT_GAINED),
    '2t': _two_consecutive_not_gained,
    'baru_ditimbang': _weight_gain_is(app_config.STATUS_WEIGHT_NEW),
    'bumil_kek': lambda p: _is_pregnant(p) and app_config.TOKEN_KEK in _text(p, 'status_lila'),
    'bumil_anemia': lambda p: _is_pregnant(p) and p.get('kesimpulan_hb') == app_config.STATUS_ANEMIA,
    'bumil_risti': _pregnancy_high_risk,
    'hipertensi': lambda p: app_config.TOKEN_HYPERTENSION in _text(p, 'kesimpulan_tensi'),
    'diabetes': lambda p: app_config.TOKEN_DIABETES in _text(p, 'kesimpulan_gds'),
    'obesitas_dewasa': lambda p: _is_category(p, app_config.CATEGORY_DEWASA, app_config.CATEGORY_LANSIA) and p.get('status_kategori_bmi') == app_config.STATUS_BMI_OBESE,
    'merokok': lambda p: _nested(p, 'skriningMerokok', 'merokok') is True,
    'phbs_kurang': lambda p: p.get('phbsClassification') in app_config.PHBS_LOW_TIERS,
}

def check_indicator(participant: Dict[str, Any], indicator_id: str) -> bool:
    """True when the snapshot satisfies the indicator; unknown ids and malformed snapshots give False."""
    if not isinstance(participant, dict):
        return False
    predicate = INDICATOR_PREDICATES.get(indicator_id)
    if predicate is None:
        return False
    return bool(predicate(participant))

# --- V. Age Banding ---
def band_for(age_in_months: Optional[float]) -> Optional[Dict[str, Any]]:
    """First age group containing floor(age_in_months), or None when unbandable."""
    if _is_missing(age_in_months):
        return None
    try:
        age_floor = math.floor(float(age_in_months))
    except (TypeError, ValueError, OverflowError):
        return None
    for group in AGE_GROUPS:
        if group["min"] <= age_floor <= group["max"]:
            return group
    return None

def age_band_label(participant: Dict[str, Any]) -> Optional[str]:
    """Band label of a snapshot, aged at its measurement date."""
    age_months = calculate_age_in_months(participant.get('tanggal_lahir'), participant.get('tanggal_pengukuran'))
    band = band_for(age_months)
    return band["label"] if band else None
