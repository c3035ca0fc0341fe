"""
Bulk personnel import and tabular report export for OHS.

Import files are read positionally as name, national ID, department and
work years; the first line is always treated as a header. Parsed workers
are handed to ``WorkerRepository.import_workers``, which drops duplicates
and assigns ids.
"""

import io
import logging
from pathlib import Path
from typing import IO, Dict, Iterable, List, Optional, Union

import pandas as pd

from .analysis.critical import critical_reasons
from .analysis.stats import hearing_averages
from .models import ReferralStatus, Worker
from .utils import safe_float

logger = logging.getLogger(__name__)

PERSONNEL_COLUMNS = ['name', 'nationalId', 'department', 'workYears']
DEFAULT_DEPARTMENT = 'Unknown'

REPORT_COLUMNS = [
    'ID', 'National ID', 'Personnel Code', 'Name', 'Department', 'Work Years',
    'Referral Status', 'Last Exam', 'Fitness', 'Hearing Avg L (dB)', 'Hearing Avg R (dB)',
    'Spirometry', 'BP', 'Critical Findings'
]

Source = Union[str, Path, IO]


def _read_table(source: Source) -> pd.DataFrame:
    if isinstance(source, (str, Path)) and str(source).lower().endswith('.xlsx'):
        df = pd.read_excel(source, dtype=str, header=None)
    else:
        df = pd.read_csv(source, dtype=str, header=None, keep_default_na=False,
                         skipinitialspace=True, skip_blank_lines=True)
    df = df.iloc[1:, :len(PERSONNEL_COLUMNS)]
    df = df.reindex(columns=range(len(PERSONNEL_COLUMNS)))
    df.columns = PERSONNEL_COLUMNS
    return df.fillna('')


def parse_personnel_csv(source: Source) -> List[Worker]:
    """Parse a personnel list into new workers.

    Args:
        source: Path (``.csv`` or ``.xlsx``), open file or CSV text.

    Returns:
        Workers in file order. Rows without a name or national ID are
        skipped. Ids are placeholders until the repository assigns them.
    """
    if isinstance(source, str) and '\n' in source:
        source = io.StringIO(source)

    try:
        df = _read_table(source)
    except pd.errors.EmptyDataError:
        logger.info("Personnel file is empty")
        return []
    except pd.errors.ParserError as e:
        raise ValueError(f"Personnel file is not a valid table: {e}")

    workers = []
    for _, row in df.iterrows():
        name = str(row['name']).strip()
        national_id = str(row['nationalId']).strip()
        if not name or not national_id:
            continue
        workers.append(Worker(
            id=0,
            national_id=national_id,
            name=name,
            department=str(row['department']).strip() or DEFAULT_DEPARTMENT,
            work_years=int(safe_float(row['workYears'])),
            referral_status=ReferralStatus.NONE,
        ))

    logger.info(f"Parsed {len(workers)} personnel rows")
    return workers


def report_rows(workers: Iterable[Worker], config: Optional[Dict] = None) -> pd.DataFrame:
    """One row per worker summarising the latest exam."""
    rows = []
    for worker in workers:
        exam = worker.latest_exam
        row = {
            'ID': worker.id,
            'National ID': worker.national_id,
            'Personnel Code': worker.personnel_code or '',
            'Name': worker.name,
            'Department': worker.department,
            'Work Years': worker.work_years,
            'Referral Status': worker.referral_status.value,
            'Last Exam': '',
            'Fitness': '',
            'Hearing Avg L (dB)': None,
            'Hearing Avg R (dB)': None,
            'Spirometry': '',
            'BP': '',
            'Critical Findings': '; '.join(critical_reasons(worker, config)),
        }
        if exam is not None:
            averages = hearing_averages(exam)
            row.update({
                'Last Exam': exam.date,
                'Fitness': exam.final_opinion.status.value,
                'Hearing Avg L (dB)': round(averages['left'], 1),
                'Hearing Avg R (dB)': round(averages['right'], 1),
                'Spirometry': exam.spirometry.interpretation.value,
                'BP': exam.bp,
            })
        rows.append(row)
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def export_report(workers: Iterable[Worker], path: Union[str, Path],
                  config: Optional[Dict] = None) -> str:
    """Write the worker report as ``.xlsx`` or ``.csv`` depending on the suffix.

    Raises:
        ValueError: Unsupported file extension.
    """
    path = Path(path)
    df = report_rows(workers, config)
    suffix = path.suffix.lower()
    if suffix == '.xlsx':
        df.to_excel(path, index=False, sheet_name='Workers')
    elif suffix == '.csv':
        df.to_csv(path, index=False, encoding='utf-8-sig')
    else:
        raise ValueError(f"Unsupported report format: {suffix or '(none)'}")
    logger.info(f"Exported report for {len(df)} workers to {path}")
    return str(path)
