# puspita/utils/report_assembler.py
# Assembles detail tables and facility cross-tab summaries from participant snapshots.

import pandas as pd
import logging
from typing import Dict, Any, Optional, List, Tuple
from config import app_config
from .core_data_processing import facility_name
from .report_definitions import (
    get_column_value,
    check_indicator,
    age_band_label,
    COLUMN_LABELS,
)

logger = logging.getLogger(__name__)

SEX_MALE_SHORT = getattr(app_config, 'SEX_MALE_SHORT', 'L')
SEX_FEMALE_SHORT = getattr(app_config, 'SEX_FEMALE_SHORT', 'P')
ROW_TOTAL_LABEL = getattr(app_config, 'SUMMARY_ROW_TOTAL_LABEL', 'Total')
BAND_COUNT_LABEL = getattr(app_config, 'SUMMARY_BAND_COUNT_LABEL', 'Jml')
TOTAL_ROW_LABEL = getattr(app_config, 'SUMMARY_TOTAL_ROW_LABEL', 'TOTAL')
AGE_GROUP_TOTAL_LABEL = getattr(app_config, 'AGE_GROUP_TOTAL_LABEL', 'Total')
UNKNOWN_FACILITY = getattr(app_config, 'UNKNOWN_LABEL', 'Tidak Diketahui')

# --- I. Helpers ---
def _participant_list(participants: Any, source_context: str) -> List[Dict[str, Any]]:
    if participants is None:
        return []
    if not isinstance(participants, list):
        logger.error(f"({source_context}) Expected a list of participant snapshots, got {type(participants)}.")
        return []
    return [p for p in participants if isinstance(p, dict)]

def _unique_ids(ids: Optional[List[str]]) -> List[str]:
    return list(dict.fromkeys(ids or []))

def facility_of(participant: Dict[str, Any]) -> str:
    return facility_name(participant) or UNKNOWN_FACILITY

def sex_code(participant: Dict[str, Any]) -> Optional[str]:
    sex = participant.get('jenis_kelamin')
    if sex == app_config.SEX_MALE:
        return SEX_MALE_SHORT
    if sex == app_config.SEX_FEMALE:
        return SEX_FEMALE_SHORT
    return None

def _facility_list(participants: List[Dict[str, Any]]) -> List[str]:
    return sorted({facility_of(p) for p in participants})

def _append_total_row(table: pd.DataFrame) -> pd.DataFrame:
    totals = table.sum(axis=0).to_frame(TOTAL_ROW_LABEL).T
    combined = pd.concat([table, totals])
    combined.index.name = 'facility'
    return combined.astype(int)

# --- II. Detail Assembly ---
def detail_header_labels(column_ids: List[str]) -> List[str]:
    return [COLUMN_LABELS.get(cid, cid) for cid in column_ids]

def build_detail_table(participants: Optional[List[Dict[str, Any]]], column_ids: List[str]) -> pd.DataFrame:
    """
    One row per snapshot (input order) and one column per selected column id
    (selection order). Cells are display strings.
    """
    module_log_prefix = "DetailReportAssembler"
    participants = _participant_list(participants, module_log_prefix)
    column_ids = _unique_ids(column_ids)
    rows = [[get_column_value(p, cid) for cid in column_ids] for p in participants]
    detail_df = pd.DataFrame(rows, columns=column_ids, dtype=object)
    logger.info(f"({module_log_prefix}) Detail table built: {len(detail_df)} rows x {len(column_ids)} columns.")
    return detail_df

# --- III. Summary Assembly ---
def _indicator_hits(participants: List[Dict[str, Any]], indicator_ids: List[str], with_age_band: bool) -> pd.DataFrame:
    """Long-format frame with one row per (participant, satisfied indicator)."""
    records = []
    for p in participants:
        sex = sex_code(p)
        if sex is None:
            logger.debug(f"Participant {p.get('nama', '?')} has no recognised sex; excluded from counts.")
            continue
        band = None
        if with_age_band:
            band = age_band_label(p)
            if band is None:
                continue
        facility = facility_of(p)
        for indicator_id in indicator_ids:
            if check_indicator(p, indicator_id):
                records.append({'facility': facility, 'indicator': indicator_id, 'band': band, 'sex': sex})
    return pd.DataFrame(records, columns=['facility', 'indicator', 'band', 'sex'])

def build_summary_table(participants: Optional[List[Dict[str, Any]]], indicator_ids: List[str]) -> pd.DataFrame:
    """
    Standard summary: rows are facilities (ascending) plus a TOTAL row; columns are
    (indicator id, L/P/Total) in indicator selection order.
    """
    module_log_prefix = "SummaryReportAssembler"
    participants = _participant_list(participants, module_log_prefix)
    indicator_ids = _unique_ids(indicator_ids)
    facilities = _facility_list(participants)
    logger.info(f"({module_log_prefix}) Summarising {len(participants)} participants over "
                f"{len(facilities)} facilities and {len(indicator_ids)} indicators.")

    count_columns = pd.MultiIndex.from_product([indicator_ids, [SEX_MALE_SHORT, SEX_FEMALE_SHORT]], names=['indicator', 'sex'])
    hits = _indicator_hits(participants, indicator_ids, with_age_band=False)
    if hits.empty:
        counts = pd.DataFrame(0, index=pd.Index(facilities, name='facility'), columns=count_columns)
    else:
        counts = (
            hits.groupby(['facility', 'indicator', 'sex']).size()
            .unstack(['indicator', 'sex'])
            .reindex(index=pd.Index(facilities, name='facility'), columns=count_columns, fill_value=0)
            .fillna(0)
        )

    columns_data: Dict[Tuple[str, str], pd.Series] = {}
    for indicator_id in indicator_ids:
        male = counts[(indicator_id, SEX_MALE_SHORT)]
        female = counts[(indicator_id, SEX_FEMALE_SHORT)]
        columns_data[(indicator_id, SEX_MALE_SHORT)] = male
        columns_data[(indicator_id, SEX_FEMALE_SHORT)] = female
        columns_data[(indicator_id, ROW_TOTAL_LABEL)] = male + female
    table = pd.DataFrame(columns_data, index=counts.index)
    if isinstance(table.columns, pd.MultiIndex):
        table.columns.names = ['indicator', 'sex']

    summary_df = _append_total_row(table)
    logger.info(f"({module_log_prefix}) Summary table built: {summary_df.shape}.")
    return summary_df

def build_nutrition_summary_table(participants: Optional[List[Dict[str, Any]]], indicator_ids: List[str]) -> pd.DataFrame:
    """
    Age-banded summary: for each indicator, one L/P/Jml triple per age band followed by
    a synthetic 'Total' band (L/P/Total) summing the real bands. Participants outside
    every band are left out of the counts; facilities still come from the whole list.
    """
    module_log_prefix = "NutritionSummaryAssembler"
    participants = _participant_list(participants, module_log_prefix)
    indicator_ids = _unique_ids(indicator_ids)
    facilities = _facility_list(participants)
    band_labels = [group["label"] for group in app_config.AGE_GROUPS]
    logger.info(f"({module_log_prefix}) Summarising {len(participants)} participants across "
                f"{len(band_labels)} age bands and {len(indicator_ids)} indicators.")

    count_columns = pd.MultiIndex.from_product(
        [indicator_ids, band_labels, [SEX_MALE_SHORT, SEX_FEMALE_SHORT]], names=['indicator', 'band', 'sex']
    )
    hits = _indicator_hits(participants, indicator_ids, with_age_band=True)
    if hits.empty:
        counts = pd.DataFrame(0, index=pd.Index(facilities, name='facility'), columns=count_columns)
    else:
        counts = (
            hits.groupby(['facility', 'indicator', 'band', 'sex']).size()
            .unstack(['indicator', 'band', 'sex'])
            .reindex(index=pd.Index(facilities, name='facility'), columns=count_columns, fill_value=0)
            .fillna(0)
        )

    columns_data: Dict[Tuple[str, str, str], Any] = {}
    for indicator_id in indicator_ids:
        total_male = 0
        total_female = 0
        for band in band_labels:
            male = counts[(indicator_id, band, SEX_MALE_SHORT)]
            female = counts[(indicator_id, band, SEX_FEMALE_SHORT)]
            columns_data[(indicator_id, band, SEX_MALE_SHORT)] = male
            columns_data[(indicator_id, band, SEX_FEMALE_SHORT)] = female
            columns_data[(indicator_id, band, BAND_COUNT_LABEL)] = male + female
            total_male = total_male + male
            total_female = total_female + female
        columns_data[(indicator_id, AGE_GROUP_TOTAL_LABEL, SEX_MALE_SHORT)] = total_male
        columns_data[(indicator_id, AGE_GROUP_TOTAL_LABEL, SEX_FEMALE_SHORT)] = total_female
        columns_data[(indicator_id, AGE_GROUP_TOTAL_LABEL, ROW_TOTAL_LABEL)] = total_male + total_female
    table = pd.DataFrame(columns_data, index=counts.index)
    if isinstance(table.columns, pd.MultiIndex):
        table.columns.names = ['indicator', 'band', 'sex']

    summary_df = _append_total_row(table)
    logger.info(f"({module_log_prefix}) Nutrition summary table built: {summary_df.shape}.")
    return summary_df
