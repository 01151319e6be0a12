from .tenancy import BusinessUnit
from .treasury import CashSafe, CashLedgerEntry
from .inventory import Product, BillOfMaterialsLine, MaterialMix
from .parties import Customer, Supplier
from .sales import Sale, SaleItem, CustomerPayment, SalePaymentAllocation
from .purchasing import PurchaseOrder, PurchaseOrderItem, PurchaseReceipt, SupplierPayment, SupplierPaymentAllocation
from .scrap import ScrapPurchase, ScrapSale
from .documents import StockTake, StockTakeItem, StockTransfer, Task
from .jobs import Job, JobItem
from .payroll import Employee, StaffLoan, PayrollRun, Payslip
from .ledger import LedgerTransaction

__all__ = [
    'BusinessUnit',
    'CashSafe', 'CashLedgerEntry',
    'Product', 'BillOfMaterialsLine', 'MaterialMix',
    'Customer', 'Supplier',
    'Sale', 'SaleItem', 'CustomerPayment', 'SalePaymentAllocation',
    'PurchaseOrder', 'PurchaseOrderItem', 'PurchaseReceipt', 'SupplierPayment', 'SupplierPaymentAllocation',
    'ScrapPurchase', 'ScrapSale',
    'StockTake', 'StockTakeItem', 'StockTransfer', 'Task',
    'Job', 'JobItem',
    'Employee', 'StaffLoan', 'PayrollRun', 'Payslip',
    'LedgerTransaction',
]
