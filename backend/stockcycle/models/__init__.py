from .inventory import Inventory, CountEntry, TransitRecord
from .reports import FinalizationReport, REPORT_STATUS_APPROVED, REPORT_STATUS_DRAFT

__all__ = [
    'Inventory', 'CountEntry', 'TransitRecord',
    'FinalizationReport', 'REPORT_STATUS_DRAFT', 'REPORT_STATUS_APPROVED',
]
