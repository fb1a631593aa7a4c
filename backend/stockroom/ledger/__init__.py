from .errors import ConflictError, InsufficientStockError, LedgerError, NotFoundError, ValidationError
from .operations import AddStock, CreateProduct, DeleteProduct, EditProduct, RecordSale, StockOperation, TransferStock
from .records import Actor, ProductRecord, TransactionRecord, TransactionType
from .stock_ledger import (
    ACTION_CREATE,
    ACTION_DELETE,
    ACTION_UPDATE,
    LedgerResult,
    add_stock,
    apply,
    create_product,
    delete_product,
    edit_product,
    record_sale,
    transfer_stock,
)

__all__ = [
    'LedgerError', 'ValidationError', 'InsufficientStockError', 'NotFoundError', 'ConflictError',
    'CreateProduct', 'AddStock', 'TransferStock', 'EditProduct', 'RecordSale', 'DeleteProduct', 'StockOperation',
    'Actor', 'ProductRecord', 'TransactionRecord', 'TransactionType',
    'LedgerResult', 'ACTION_CREATE', 'ACTION_UPDATE', 'ACTION_DELETE',
    'create_product', 'add_stock', 'transfer_stock', 'edit_product', 'record_sale', 'delete_product', 'apply',
]
