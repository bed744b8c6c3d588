"""Force every INSERT row to the declared column count."""

import logging
from typing import List

from core.sql_types import Scalar

logger = logging.getLogger(__name__)

PAD_VALUE = ''


def reconcile_rows(columns: List[str], rows: List[List[Scalar]]) -> List[List[Scalar]]:
    """
    Return new rows, each exactly len(columns) wide.

    Long rows are truncated to the first n values, short rows are padded on
    the right with empty strings. Adjustments are silent apart from a debug log.
    """
    width = len(columns)
    reconciled = []
    for index, row in enumerate(rows):
        if len(row) == width:
            reconciled.append(list(row))
        elif len(row) > width:
            logger.debug(f"Row {index}: truncating {len(row)} values to {width} columns")
            reconciled.append(list(row[:width]))
        else:
            logger.debug(f"Row {index}: padding {len(row)} values to {width} columns")
            reconciled.append(list(row) + [PAD_VALUE] * (width - len(row)))
    return reconciled
