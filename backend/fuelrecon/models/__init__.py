from .stations import Station, Employee, FuelPrice
from .shifts import Shift, MeterReading
from .sales import Transaction, Expense
from .reconciliation import SalesMismatch
from .reports import FinancialReport
from .activity import ActivityLog

__all__ = [
    'Station', 'Employee', 'FuelPrice',
    'Shift', 'MeterReading',
    'Transaction', 'Expense',
    'SalesMismatch',
    'FinancialReport',
    'ActivityLog',
]
