from .inventory import Product, StockMovement
from .customers import Customer
from .sales import Sale, SaleLine
from .invoices import Invoice, InvoiceSequence

__all__ = [
    'Product', 'StockMovement',
    'Customer',
    'Sale', 'SaleLine',
    'Invoice', 'InvoiceSequence',
]
