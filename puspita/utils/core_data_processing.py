# puspita/utils/core_data_processing.py
# Core data loading, date handling, filtering and snapshot utilities for PUSPITA reports.

import pandas as pd
import os
import logging
import json
import calendar
from config import app_config
from typing import List, Dict, Any, Optional, Tuple
from datetime import datetime, date

logger = logging.getLogger(__name__)

# --- I. Core Helper Functions ---
def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False

def _date_text(value: Any) -> str:
    if _is_missing(value):
        return ''
    if isinstance(value, (datetime, date)):
        return value.strftime('%Y-%m-%d')
    return str(value)

def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO-like date string, date or timestamp into a date; None when unparseable."""
    if _is_missing(value) or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = pd.to_datetime(str(value), errors='coerce')
    if pd.isna(parsed):
        logger.debug(f"Unparseable date value: {value!r}")
        return None
    return parsed.date()

def format_date(value: Any) -> str:
    """Indonesian long date, e.g. '01 Februari 2024'. Empty input gives '-'."""
    if _is_missing(value) or value == '':
        return '-'
    parsed = parse_date(value)
    if parsed is None:
        return str(value)
    return f"{parsed.day:02d} {app_config.MONTH_NAMES_ID[parsed.month - 1]} {parsed.year}"

def month_key(value: Any) -> str:
    """YYYY-MM prefix of a date value, '' when absent."""
    return _date_text(value)[:7]

def sort_records_by_date(records: Optional[List[Dict[str, Any]]], date_field: str = 'tanggal_pengukuran', descending: bool = True) -> List[Dict[str, Any]]:
    """
    Returns a new list of records sorted by date. Ties keep their original order
    and records without a parseable date go last.
    """
    if not records:
        return []
    def _key(record: Dict[str, Any]) -> Tuple[int, int]:
        parsed = parse_date(record.get(date_field)) if isinstance(record, dict) else None
        if parsed is None:
            return (1, 0)
        return (0, -parsed.toordinal() if descending else parsed.toordinal())
    return sorted(records, key=_key)

def history_records(participant: Dict[str, Any], field: str = 'riwayatPengukuran') -> List[Dict[str, Any]]:
    """Dict entries of a history list; anything else is ignored."""
    records = participant.get(field)
    if not isinstance(records, list):
        return []
    return [r for r in records if isinstance(r, dict)]

def facility_name(participant: Dict[str, Any]) -> str:
    """Stripped posyandu name as text, '' when missing or blank."""
    name = participant.get('nama_posyandu')
    if _is_missing(name):
        return ''
    return str(name).strip()

# --- II. Age & Category Functions ---
def calculate_detailed_age(birth_date: Any, target_date: Any = None) -> Optional[Dict[str, int]]:
    """Calendar difference in years, months and days; None if the birth date is missing."""
    birth = parse_date(birth_date)
    if birth is None:
        return None
    target = parse_date(target_date) or date.today()
    years = target.year - birth.year
    months = target.month - birth.month
    days = target.day - birth.day
    if days < 0:
        months -= 1
        prev_year, prev_month = (target.year, target.month - 1) if target.month > 1 else (target.year - 1, 12)
        days += calendar.monthrange(prev_year, prev_month)[1]
    if months < 0:
        years -= 1
        months += 12
    return {"years": years, "months": months, "days": days}

def calculate_age(birth_date: Any, on_date: Any = None) -> Optional[int]:
    detailed = calculate_detailed_age(birth_date, on_date)
    return detailed["years"] if detailed else None

def calculate_age_in_months(birth_date: Any, measurement_date: Any = None) -> Optional[float]:
    """Fractional age in months at the measurement date (today if absent)."""
    detailed = calculate_detailed_age(birth_date, measurement_date)
    if detailed is None:
        return None
    return detailed["years"] * 12 + detailed["months"] + detailed["days"] / app_config.DAYS_PER_MONTH_AVG

def format_detailed_age(birth_date: Any, target_date: Any = None) -> str:
    detailed = calculate_detailed_age(birth_date, target_date)
    if detailed is None:
        return '-'
    years, months = detailed["years"], detailed["months"]
    if years == 0:
        return "Kurang dari 1 bulan" if months == 0 else f"{months} bulan"
    return f"{years} tahun {f'{months} bulan' if months > 0 else ''}".strip()

def get_category_label(category: Any) -> str:
    return app_config.CATEGORY_LABELS.get(category, app_config.UNKNOWN_LABEL)

def determine_category(birth_date: Any, is_pregnant: bool = False, on_date: Any = None) -> Optional[str]:
    if is_pregnant:
        return app_config.CATEGORY_IBU_HAMIL
    detailed = calculate_detailed_age(birth_date, on_date)
    if detailed is None:
        return None
    if detailed["years"] * 12 + detailed["months"] < app_config.BALITA_MAX_AGE_MONTHS:
        return app_config.CATEGORY_BALITA
    if detailed["years"] < app_config.ADULT_MIN_AGE_YEARS:
        return app_config.CATEGORY_ANAK_REMAJA
    if detailed["years"] < app_config.ELDERLY_MIN_AGE_YEARS:
        return app_config.CATEGORY_DEWASA
    return app_config.CATEGORY_LANSIA

# --- III. Data Loading ---
def load_participants(file_path: Optional[str] = None, source_context: str = "DataLoader") -> List[Dict[str, Any]]:
    actual_file_path = file_path or app_config.PARTICIPANTS_JSON
    logger.info(f"({source_context}) Loading participants from: {actual_file_path}")
    if not os.path.exists(actual_file_path):
        logger.error(f"({source_context}) Participants file not found: {actual_file_path}")
        return []
    try:
        with open(actual_file_path, encoding='utf-8') as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"({source_context}) Error loading participants: {e}")
        return []
    if not isinstance(raw, list):
        logger.error(f"({source_context}) Expected a JSON array of participants, got {type(raw).__name__}")
        return []
    participants = [p for p in raw if isinstance(p, dict)]
    if len(participants) != len(raw):
        logger.warning(f"({source_context}) Skipped {len(raw) - len(participants)} non-object entries.")
    for p in participants:
        p.setdefault('riwayatPengukuran', [])
        p.setdefault('riwayatKunjunganRumah', [])
    logger.info(f"({source_context}) Loaded {len(participants)} participants.")
    return participants

# --- IV. Report Filtering Functions ---
def _ensure_list(participants: Any, source_context: str) -> List[Dict[str, Any]]:
    if participants is None:
        return []
    if not isinstance(participants, list):
        logger.error(f"({source_context}) Expected a list of participants, got {type(participants)}.")
        return []
    return [p for p in participants if isinstance(p, dict)]

def _matches_month(participant: Dict[str, Any], month: str) -> bool:
    if any(_date_text(r.get('tanggal_pengukuran')).startswith(month) for r in history_records(participant)):
        return True
    if any(_date_text(r.get('tanggal_kunjungan')).startswith(month) for r in history_records(participant, 'riwayatKunjunganRumah')):
        return True
    served = _date_text(participant.get('tanggal_pelayanan'))
    return bool(served) and served.startswith(month)

def filter_participants(
    participants: Optional[List[Dict[str, Any]]],
    category_filter: str = app_config.FILTER_ALL,
    desa: str = app_config.FILTER_ALL,
    posyandu: str = app_config.FILTER_ALL,
    month: str = app_config.FILTER_ALL,
    source_context: str = "ReportFilter"
) -> List[Dict[str, Any]]:
    """
    Filters participants by template category, village, facility and month.
    'semua' disables a criterion; 'ptm' selects adults and elderly.
    """
    participants = _ensure_list(participants, source_context)
    all_value = app_config.FILTER_ALL
    desa_active = bool(desa) and desa.lower() != all_value
    posyandu_active = bool(posyandu) and posyandu != all_value
    month_active = bool(month) and month != all_value

    filtered = []
    for p in participants:
        category = p.get('kategori')
        if category_filter == app_config.FILTER_PTM:
            if category not in app_config.PTM_CATEGORIES:
                continue
        elif category_filter and category_filter != all_value and category != category_filter:
            continue
        if desa_active and p.get('alamat') != desa:
            continue
        if posyandu_active and facility_name(p).lower() != posyandu.lower():
            continue
        if month_active and not _matches_month(p, month):
            continue
        filtered.append(p)
    logger.info(f"({source_context}) {len(filtered)} of {len(participants)} participants matched "
                f"category={category_filter}, desa={desa}, posyandu={posyandu}, month={month}.")
    return filtered

def build_report_snapshots(participants: Optional[List[Dict[str, Any]]], month: str = app_config.FILTER_ALL) -> List[Dict[str, Any]]:
    """
    Prepares one snapshot per participant. For a specific month the latest record of
    that month is overlaid on a copy of the participant; inputs are never mutated.
    """
    participants = _ensure_list(participants, "ReportSnapshots")
    if not month or month == app_config.FILTER_ALL:
        return list(participants)
    snapshots = []
    for p in participants:
        month_records = [r for r in history_records(p) if _date_text(r.get('tanggal_pengukuran')).startswith(month)]
        latest = sort_records_by_date(month_records)
        if latest:
            record = latest[0]
            snapshot = {**p, **record}
            snapshot['tanggal_pengukuran'] = record.get('tanggal_pengukuran')
            snapshot['tanggal_pelayanan'] = record.get('tanggal_pengukuran')
            snapshots.append(snapshot)
        else:
            snapshots.append(p)
    return snapshots

def get_available_months(participants: Optional[List[Dict[str, Any]]]) -> List[str]:
    """Distinct YYYY-MM values from service, measurement and home-visit dates, newest first."""
    months = set()
    for p in _ensure_list(participants, "AvailableMonths"):
        if p.get('tanggal_pelayanan'):
            months.add(month_key(p['tanggal_pelayanan']))
        for r in history_records(p):
            if r.get('tanggal_pengukuran'):
                months.add(month_key(r['tanggal_pengukuran']))
        for r in history_records(p, 'riwayatKunjunganRumah'):
            if r.get('tanggal_kunjungan'):
                months.add(month_key(r['tanggal_kunjungan']))
    months.discard('')
    return sorted(months, reverse=True)

def get_available_posyandus(participants: Optional[List[Dict[str, Any]]], desa: str = app_config.FILTER_ALL) -> List[str]:
    posyandus = set()
    restrict = bool(desa) and desa.lower() != app_config.FILTER_ALL
    for p in _ensure_list(participants, "AvailablePosyandus"):
        name = facility_name(p)
        if not name:
            continue
        if restrict and p.get('alamat') != desa:
            continue
        posyandus.add(name)
    return sorted(posyandus)

def summarize_filter_counts(participants: Optional[List[Dict[str, Any]]], month: str = app_config.FILTER_ALL) -> Dict[str, int]:
    participants = _ensure_list(participants, "FilterCounts")
    if not month or month == app_config.FILTER_ALL:
        served = sum(1 for p in participants if p.get('tanggal_pelayanan'))
    else:
        served = sum(1 for p in participants if _date_text(p.get('tanggal_pelayanan')).startswith(month))
    return {"total_participants": len(participants), "total_served": served}
