# puspita/config/app_config.py
# Configuration for "PUSPITA" - Posyandu record keeping and report engine.

import os
import logging

# --- Configure Logging ---
LOG_LEVEL = os.getenv("PUSPITA_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(module)s.%(funcName)s:%(lineno)d] - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
logger = logging.getLogger(__name__)

# --- I. Core System & Directory Configuration ---
BASE_APP_ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
DATA_SOURCES_DIR = os.path.join(BASE_APP_ROOT_DIR, "data_sources")

PARTICIPANTS_JSON = os.getenv("PUSPITA_PARTICIPANTS_JSON", os.path.join(DATA_SOURCES_DIR, "participants.json"))
REPORT_OUTPUT_DIR = os.getenv("PUSPITA_REPORT_OUTPUT_DIR", os.path.join(BASE_APP_ROOT_DIR, "reports_output"))

APP_NAME = "PUSPITA"
APP_VERSION = "1.0.0"

# --- II. Participant Semantics ---
CATEGORY_LABELS = {
    'ibu-hamil': 'Ibu Hamil',
    'balita': 'Bayi & Balita',
    'anak-remaja': 'Anak & Remaja',
    'dewasa': 'Dewasa',
    'lansia': 'Lansia',
}
CATEGORY_BALITA = 'balita'
CATEGORY_IBU_HAMIL = 'ibu-hamil'
CATEGORY_ANAK_REMAJA = 'anak-remaja'
CATEGORY_DEWASA = 'dewasa'
CATEGORY_LANSIA = 'lansia'
UNKNOWN_LABEL = 'Tidak Diketahui'

# Template-level category filters on top of the participant categories
FILTER_ALL = 'semua'
FILTER_PTM = 'ptm'
PTM_CATEGORIES = [CATEGORY_DEWASA, CATEGORY_LANSIA]

SEX_MALE = 'Laki-laki'
SEX_FEMALE = 'Perempuan'
SEX_MALE_SHORT = 'L'
SEX_FEMALE_SHORT = 'P'

YES_LABEL = 'Ya'
NO_LABEL = 'Tidak'
LIST_SEPARATOR = '; '
NIK_TEXT_PREFIX = "'"

DESA_OPTIONS = ['Kupu', 'Ketanggungan', 'Lawatan', 'Pengarasan', 'Sidakaton', 'Sidapurna', 'Dukuhturi']

MONTH_NAMES_ID = [
    'Januari', 'Februari', 'Maret', 'April', 'Mei', 'Juni',
    'Juli', 'Agustus', 'September', 'Oktober', 'November', 'Desember'
]

# --- III. Controlled Status Vocabulary ---
# Tokens shared by the classifier (producer) and the indicator evaluator (consumer).
# Matching is case-sensitive.
STATUS_WEIGHT_GAINED = 'Naik'
STATUS_WEIGHT_NOT_GAINED = 'Tidak Naik'
STATUS_WEIGHT_NEW = 'Baru Ditimbang'
STATUS_WEIGHT_SKIPPED = 'O'

TOKENS_STUNTING = ['pendek', 'stunted']
TOKENS_WASTED = ['Gizi kurang', 'Gizi buruk']
TOKEN_UNDERWEIGHT_SEVERE = 'sangat kurang'
STATUS_UNDERWEIGHT = 'Berat badan kurang'
TOKENS_OVERWEIGHT_BB_TB = ['lebih', 'Obesitas']
TOKENS_OVERWEIGHT_BB_U = ['lebih']
TOKEN_KEK = 'KEK'
TOKEN_HYPERTENSION = 'Hipertensi'
TOKEN_DIABETES = 'Diabetes'
STATUS_ANEMIA = 'Anemia'
STATUS_NORMAL = 'Normal'

STATUS_BMI_UNDER = 'Berat Badan Kurang'
STATUS_BMI_OVER = 'Berat Badan Lebih'
STATUS_BMI_OBESE = 'Obesitas'
STATUS_LILA_KEK = 'KEK (Kurang Energi Kronis)'
STATUS_LILA_UNDERNOURISHED = 'Kurang Gizi'

STATUS_BP_HYPOTENSION = 'Hipotensi'
STATUS_BP_PREHYPERTENSION = 'Pra-Hipertensi'
STATUS_BP_STAGE_1 = 'Hipertensi Tahap 1'
STATUS_BP_STAGE_2 = 'Hipertensi Tahap 2'
STATUS_GDS_PREDIABETES = 'Pra-Diabetes'
STATUS_GDS_DIABETES = 'Tinggi (Diabetes)'
STATUS_CHOL_BORDERLINE = 'Batas Tinggi'
STATUS_CHOL_HIGH = 'Kolesterol Tinggi'
STATUS_URIC_HIGH = 'Asam Urat Tinggi'
STATUS_URIC_LOW = 'Asam Urat Rendah'

PHBS_PRATAMA = 'PHBS Pratama'
PHBS_MADYA = 'PHBS Madya'
PHBS_UTAMA = 'PHBS Utama'
PHBS_PARIPURNA = 'PHBS Paripurna'
PHBS_LOW_TIERS = [PHBS_PRATAMA, PHBS_MADYA]

# --- IV. Health Thresholds ---
BMI_UNDERWEIGHT_MAX = 18.5
BMI_OVERWEIGHT_MIN = 25.0
BMI_OBESE_MIN = 30.0
LILA_KEK_THRESHOLD_CM = 23.5

PREGNANCY_RISK_AGE_MIN = 20
PREGNANCY_RISK_AGE_MAX = 35

# Minimum weight gain (KBM) in grams by completed month of age; older children need any gain.
KBM_GRAMS_BY_AGE_MONTH = [(0, 800), (2, 900), (3, 800), (4, 600), (5, 500), (6, 400), (12, 300), (24, 200)]
WEIGHT_GAIN_MAX_GAP_MONTHS = 1

BP_HYPOTENSION_SYS = 90
BP_HYPOTENSION_DIA = 60
BP_NORMAL_SYS = 120
BP_NORMAL_DIA = 80
BP_STAGE_1_SYS = 140
BP_STAGE_1_DIA = 90
BP_STAGE_2_SYS = 160
BP_STAGE_2_DIA = 100

GDS_PREDIABETES_MIN = 140
GDS_DIABETES_MIN = 200
CHOLESTEROL_BORDERLINE_MIN = 200
CHOLESTEROL_HIGH_MIN = 240
URIC_ACID_RANGE = {SEX_MALE: (3.4, 7.0), SEX_FEMALE: (2.4, 5.7)}

HB_ANEMIA_PREGNANT = 11.0
# (max age in years inclusive, threshold) for children and teens; None means no upper bound
HB_ANEMIA_CHILD = [(4, 11.0), (11, 11.5), (14, 12.0)]
HB_ANEMIA_ADOLESCENT = {SEX_MALE: 13.0, SEX_FEMALE: 12.0}

PHBS_TIER_MAX_SCORES = [(5, PHBS_PRATAMA), (10, PHBS_MADYA), (15, PHBS_UTAMA)]
PHBS_SAFE_WATER_SOURCES = ['PAMSIMAS', 'Sumur bor dengan pompa listrik', 'Sumur bor dengan pompa tangan', 'Sumur gali terlindungi']
PHBS_UNSAFE_SANITATION = ['Cubluk / Lubang Tanah', 'Dibuang langsung ke lingkungan']

BALITA_MAX_AGE_MONTHS = 60
ADULT_MIN_AGE_YEARS = 18
ELDERLY_MIN_AGE_YEARS = 60
DAYS_PER_MONTH_AVG = 30.44

# --- V. Report Configuration ---
AGE_GROUPS = [
    {"label": "0-6 bln", "min": 0, "max": 6},
    {"label": "7-11 bln", "min": 7, "max": 11},
    {"label": "12-23 bln", "min": 12, "max": 23},
    {"label": "24-59 bln", "min": 24, "max": 59},
]
AGE_GROUP_TOTAL_LABEL = 'Total'
SUMMARY_TOTAL_ROW_LABEL = 'TOTAL'
SUMMARY_FACILITY_HEADER = 'Nama Posyandu'
SUMMARY_BAND_COUNT_LABEL = 'Jml'
SUMMARY_ROW_TOTAL_LABEL = 'Total'
NUTRITION_TEMPLATE_ID = 'gizi'

EXPORT_WORKSHEET_NAME = 'Laporan PUSPITA'
EXPORT_FILENAME_PREFIX = 'laporan_puspita'
EXPORT_FILE_EXTENSION = 'xls'
# Columns written as spreadsheet text cells: exact ids, then id substrings
EXPORT_TEXT_COLUMNS = ['nik']
EXPORT_TEXT_COLUMN_MARKERS = ['nomorKartu']

DEFAULT_REPORT_TEMPLATES = [
    {
        "id": "gizi",
        "name": "Laporan Gizi (Balita)",
        "defaultCategory": CATEGORY_BALITA,
        "format": "detail",
        "selectedColumns": ['nama', 'nik', 'tanggal_lahir', 'jenis_kelamin', 'nama_posyandu', 'berat_badan', 'tinggi_badan', 'status_bb_u', 'status_tb_u', 'status_bb_tb', 'status_kenaikan_berat', 'imunisasi', 'vitaminA', 'obatCacing'],
    },
    {
        "id": "bumil",
        "name": "Laporan Ibu Hamil",
        "defaultCategory": CATEGORY_IBU_HAMIL,
        "format": "detail",
        "selectedColumns": ['nama', 'nik', 'alamat', 'status_hamil', 'berat_badan', 'tinggi_badan', 'lila', 'status_lila', 'tensi', 'pemeriksaanHB', 'kesimpulan_hb', 'tfu', 'djj', 'presentasi', 'kesimpulan_tensi'],
    },
    {
        "id": "ptm",
        "name": "Laporan PTM (Dewasa & Lansia)",
        "defaultCategory": FILTER_PTM,
        "format": "detail",
        "selectedColumns": ['nama', 'nik', 'alamat', 'kategori', 'tensi', 'kesimpulan_tensi', 'gds', 'kesimpulan_gds', 'kolesterol', 'kesimpulan_kolesterol', 'asamUrat', 'kesimpulan_asam_urat', 'skriningMerokok_merokok', 'status_bmi'],
    },
    {
        "id": "phbs",
        "name": "Laporan Survei PHBS",
        "defaultCategory": FILTER_ALL,
        "format": "detail",
        "selectedColumns": ['nama', 'nik', 'alamat', 'phbsClassification', 'phbsScore', 'survei_sumberAirUtama', 'survei_tersediaJambanKeluarga', 'survei_merokokDalamRumah', 'survei_jentikNyamuk'],
    },
    {
        "id": "lengkap",
        "name": "Laporan Lengkap",
        "defaultCategory": FILTER_ALL,
        "format": "detail",
        # Empty selection means every catalog column
        "selectedColumns": [],
    },
    {
        "id": "rekap_gizi",
        "name": "Rekap Gizi Balita per Kelompok Umur",
        "defaultCategory": CATEGORY_BALITA,
        "format": "summary",
        "age_banded": True,
        "selectedColumns": ['jumlah_peserta', 'jumlah_hadir', 'stunting', 'wasted', 'underweight', 'overweight', 'naik_bb', 'tidak_naik_bb', '2t', 'baru_ditimbang'],
    },
    {
        "id": "rekap_ptm",
        "name": "Rekap PTM per Posyandu",
        "defaultCategory": FILTER_PTM,
        "format": "summary",
        "selectedColumns": ['jumlah_peserta', 'jumlah_hadir', 'hipertensi', 'diabetes', 'obesitas_dewasa', 'merokok'],
    },
]

# --- End of Configuration ---
