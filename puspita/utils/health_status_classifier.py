# puspita/utils/health_status_classifier.py
# Produces the status strings stored on measurement records (BMI, LILA, weight gain,
# screening conclusions, PHBS tier). Report indicators read these strings back.

import logging
import numpy as np
from typing import List, Dict, Any, Optional
from config import app_config
from .core_data_processing import _is_missing, parse_date, sort_records_by_date, calculate_age_in_months

logger = logging.getLogger(__name__)

# --- I. Anthropometry ---
def _positive_number(value: Any) -> Optional[float]:
    if _is_missing(value) or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.debug(f"Non-numeric measurement value ignored: {value!r}")
        return None
    if not np.isfinite(number) or number <= 0:
        return None
    return number

def calculate_bmi_status(weight: Any, height_cm: Any) -> Dict[str, Any]:
    """
    BMI rounded to one decimal (status_bmi) and its adult category (status_kategori_bmi).
    Category is '-' (and BMI None) when weight or height is unusable.
    """
    weight_kg = _positive_number(weight)
    height = _positive_number(height_cm)
    if weight_kg is None or height is None:
        return {"status_bmi": None, "status_kategori_bmi": '-'}
    height_m = height / 100
    bmi = round(weight_kg / (height_m * height_m), 1)
    if bmi < app_config.BMI_UNDERWEIGHT_MAX:
        status = app_config.STATUS_BMI_UNDER
    elif bmi >= app_config.BMI_OBESE_MIN:
        status = app_config.STATUS_BMI_OBESE
    elif bmi >= app_config.BMI_OVERWEIGHT_MIN:
        status = app_config.STATUS_BMI_OVER
    else:
        status = app_config.STATUS_NORMAL
    return {"status_bmi": bmi, "status_kategori_bmi": status}

def calculate_lila_status(lila: Any, category: Optional[str]) -> str:
    """Upper-arm circumference status for pregnant women and the elderly; '-' otherwise or when absent."""
    lila_cm = _positive_number(lila)
    if lila_cm is None:
        return '-'
    below = lila_cm < app_config.LILA_KEK_THRESHOLD_CM
    if category == app_config.CATEGORY_IBU_HAMIL:
        return app_config.STATUS_LILA_KEK if below else app_config.STATUS_NORMAL
    if category == app_config.CATEGORY_LANSIA:
        return app_config.STATUS_LILA_UNDERNOURISHED if below else app_config.STATUS_NORMAL
    return '-'

def minimum_weight_gain_grams(age_in_months: Optional[float]) -> Optional[int]:
    """KBM for the completed month of age; None means any positive gain counts."""
    if age_in_months is None:
        return None
    whole_months = int(age_in_months // 1)
    first_month, first_kbm = app_config.KBM_GRAMS_BY_AGE_MONTH[0]
    if whole_months <= first_month:
        return first_kbm
    for max_month, kbm in app_config.KBM_GRAMS_BY_AGE_MONTH[1:]:
        if whole_months <= max_month:
            return kbm
    return None

def calculate_weight_gain_status(
    weight: Any,
    measurement_date: Any,
    birth_date: Any,
    history: Optional[List[Dict[str, Any]]]
) -> Dict[str, Any]:
    """
    Compares a weighing against the latest earlier weighed record.
    Status is 'Baru Ditimbang' without a previous weight, 'O' when more than one
    calendar month separates the two, otherwise 'Naik'/'Tidak Naik' against the KBM.
    'diff' is the rounded gain in grams when a comparison was made.
    """
    current_weight = _positive_number(weight)
    current_date = parse_date(measurement_date)
    if current_weight is None or current_date is None:
        return {"status": app_config.STATUS_WEIGHT_NEW, "diff": None}

    previous = None
    for record in sort_records_by_date(history or []):
        record_date = parse_date(record.get('tanggal_pengukuran'))
        if record_date is None or record_date >= current_date:
            continue
        if _positive_number(record.get('berat_badan')) is None:
            continue
        previous = record
        break
    if previous is None:
        return {"status": app_config.STATUS_WEIGHT_NEW, "diff": None}

    previous_date = parse_date(previous['tanggal_pengukuran'])
    month_gap = (current_date.year - previous_date.year) * 12 + (current_date.month - previous_date.month)
    if month_gap > app_config.WEIGHT_GAIN_MAX_GAP_MONTHS:
        return {"status": app_config.STATUS_WEIGHT_SKIPPED, "diff": None}

    difference_grams = (current_weight - float(previous['berat_badan'])) * 1000
    kbm = minimum_weight_gain_grams(calculate_age_in_months(birth_date, current_date))
    gained = difference_grams > 0 if kbm is None else difference_grams >= kbm
    status = app_config.STATUS_WEIGHT_GAINED if gained else app_config.STATUS_WEIGHT_NOT_GAINED
    return {"status": status, "diff": int(round(difference_grams))}

# --- II. Screening Conclusions ---
def _blood_pressure_status(systolic: float, diastolic: float) -> Optional[str]:
    if systolic < app_config.BP_HYPOTENSION_SYS and diastolic < app_config.BP_HYPOTENSION_DIA:
        return app_config.STATUS_BP_HYPOTENSION
    if systolic < app_config.BP_NORMAL_SYS and diastolic < app_config.BP_NORMAL_DIA:
        return app_config.STATUS_NORMAL
    if app_config.BP_NORMAL_SYS <= systolic < app_config.BP_STAGE_1_SYS or app_config.BP_NORMAL_DIA <= diastolic < app_config.BP_STAGE_1_DIA:
        return app_config.STATUS_BP_PREHYPERTENSION
    if app_config.BP_STAGE_1_SYS <= systolic < app_config.BP_STAGE_2_SYS or app_config.BP_STAGE_1_DIA <= diastolic < app_config.BP_STAGE_2_DIA:
        return app_config.STATUS_BP_STAGE_1
    if systolic >= app_config.BP_STAGE_2_SYS or diastolic >= app_config.BP_STAGE_2_DIA:
        return app_config.STATUS_BP_STAGE_2
    return None

def _hemoglobin_status(hb: float, sex: Optional[str], age_years: Optional[int], category: Optional[str]) -> Optional[str]:
    if category == app_config.CATEGORY_IBU_HAMIL:
        return app_config.STATUS_ANEMIA if hb < app_config.HB_ANEMIA_PREGNANT else app_config.STATUS_NORMAL
    if category not in (app_config.CATEGORY_BALITA, app_config.CATEGORY_ANAK_REMAJA) or age_years is None:
        return None
    threshold = None
    for max_age, child_threshold in app_config.HB_ANEMIA_CHILD:
        if age_years <= max_age:
            threshold = child_threshold
            break
    if threshold is None:
        adolescent = app_config.HB_ANEMIA_ADOLESCENT
        threshold = adolescent[app_config.SEX_MALE] if sex == app_config.SEX_MALE else adolescent[app_config.SEX_FEMALE]
    return app_config.STATUS_ANEMIA if hb < threshold else app_config.STATUS_NORMAL

def calculate_health_service_status(
    systolic: Any = None,
    diastolic: Any = None,
    gds: Any = None,
    cholesterol: Any = None,
    uric_acid: Any = None,
    hemoglobin: Any = None,
    sex: Optional[str] = None,
    age_years: Optional[int] = None,
    category: Optional[str] = None
) -> Dict[str, str]:
    """Screening conclusions keyed by record field; only measured values get a conclusion."""
    conclusions: Dict[str, str] = {}

    sys_value, dia_value = _positive_number(systolic), _positive_number(diastolic)
    if sys_value is not None and dia_value is not None:
        tensi = _blood_pressure_status(sys_value, dia_value)
        if tensi:
            conclusions['kesimpulan_tensi'] = tensi

    gds_value = _positive_number(gds)
    if gds_value is not None:
        if gds_value < app_config.GDS_PREDIABETES_MIN:
            conclusions['kesimpulan_gds'] = app_config.STATUS_NORMAL
        elif gds_value < app_config.GDS_DIABETES_MIN:
            conclusions['kesimpulan_gds'] = app_config.STATUS_GDS_PREDIABETES
        else:
            conclusions['kesimpulan_gds'] = app_config.STATUS_GDS_DIABETES

    chol_value = _positive_number(cholesterol)
    if chol_value is not None:
        if chol_value < app_config.CHOLESTEROL_BORDERLINE_MIN:
            conclusions['kesimpulan_kolesterol'] = app_config.STATUS_NORMAL
        elif chol_value < app_config.CHOLESTEROL_HIGH_MIN:
            conclusions['kesimpulan_kolesterol'] = app_config.STATUS_CHOL_BORDERLINE
        else:
            conclusions['kesimpulan_kolesterol'] = app_config.STATUS_CHOL_HIGH

    uric_value = _positive_number(uric_acid)
    if uric_value is not None:
        low, high = app_config.URIC_ACID_RANGE[app_config.SEX_MALE if sex == app_config.SEX_MALE else app_config.SEX_FEMALE]
        if uric_value > high:
            conclusions['kesimpulan_asam_urat'] = app_config.STATUS_URIC_HIGH
        elif uric_value < low:
            conclusions['kesimpulan_asam_urat'] = app_config.STATUS_URIC_LOW
        else:
            conclusions['kesimpulan_asam_urat'] = app_config.STATUS_NORMAL

    hb_value = _positive_number(hemoglobin)
    if hb_value is not None:
        hb_status = _hemoglobin_status(hb_value, sex, age_years, category)
        if hb_status:
            conclusions['kesimpulan_hb'] = hb_status

    return conclusions

# --- III. Household Survey ---
def calculate_phbs_score(survey: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Clean and healthy living behaviour (PHBS) score over 16 household items.
    Answers must be literal booleans; anything else does not score.
    """
    survey = survey or {}

    def _is(key: str, expected: bool) -> bool:
        return survey.get(key) is expected

    has_7_23 = _is('adaBalita_7_23_bln', True)
    has_2_5 = _is('adaBalita_2_5_thn', True)
    if not has_7_23 and not has_2_5:
        growth_monitored = True
    else:
        growth_monitored = (not has_7_23 or _is('pemantauanPertumbuhan_7_23_bln', True)) and \
                           (not has_2_5 or _is('pemantauanPertumbuhan_2_5_thn', True))
    sanitation = survey.get('bangunanBawahJamban')

    checks = [
        _is('sedangHamil', False) or _is('pemeriksaanKehamilan6Kali', True),
        _is('adaBayi_0_11_bln', False) or _is('bersalinDiFaskes', True),
        _is('adaBalita_7_23_bln', False) or _is('asiEksklusif', True),
        growth_monitored,
        _is('konsumsiGiziSeimbang', True),
        _is('adaRemajaPutri_10_18_thn', False) or _is('remajaPutriMinumTTD', True),
        _is('garamBeryodium', True),
        survey.get('sumberAirUtama') in app_config.PHBS_SAFE_WATER_SOURCES,
        bool(sanitation) and sanitation not in app_config.PHBS_UNSAFE_SANITATION,
        _is('buangSampahPadaTempatnya', True),
        _is('aktivitasFisik', True),
        _is('merokokDalamRumah', False),
        _is('cuciTanganPakaiSabun', True),
        _is('gosokGigi', True),
        _is('cekKesehatanBerkala', True),
        _is('jentikNyamuk', False),
    ]
    score = sum(1 for passed in checks if passed)

    classification = app_config.PHBS_PARIPURNA
    for max_score, tier in app_config.PHBS_TIER_MAX_SCORES:
        if score <= max_score:
            classification = tier
            break
    return {"phbsScore": score, "phbsClassification": classification}
