from .inventory import Product
from .employees import Employee, EmployeeAssignment
from .sales import Sale, SaleItem
from .requests import StockRequest, MoneyRequest
from .ledger import CustodyEvent

__all__ = [
    'Product',
    'Employee', 'EmployeeAssignment',
    'Sale', 'SaleItem',
    'StockRequest', 'MoneyRequest',
    'CustodyEvent',
]
