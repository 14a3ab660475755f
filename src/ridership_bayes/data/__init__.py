"""
Observation data for the ridership models.

**DataSet (dataset.py):**
- Immutable route table: class index, hours change, log ridership ratio
- Explicit versioned ClassTable for label -> index encoding

**ETL (etl.py):**
- Difference, percent and log-rate columns from raw 2015/2019 counts
- Threshold-based service-change labels
"""

from ridership_bayes.data.dataset import (
    DEFAULT_CLASS_TABLE,
    REQUIRED_COLUMNS,
    ClassTable,
    DataSet,
)
from ridership_bayes.data.etl import derive_columns, label_service_change, load_ridership_csv

__all__ = [
    "DEFAULT_CLASS_TABLE",
    "REQUIRED_COLUMNS",
    "ClassTable",
    "DataSet",
    "derive_columns",
    "label_service_change",
    "load_ridership_csv",
]
