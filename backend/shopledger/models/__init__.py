from .shops import Shop, Supplier
from .inventory import InventoryItem, StockMovement, Purchase, PurchaseLine, ITEM_CATEGORIES
from .documents import StockAllocation, AllocationLine, Exchange, ExchangeLine
from .repairs import Repair, RepairPart
from .payments import Payment, SupplierDebt
from .sales import Sale, SaleLine
from .activity import ActivityEvent

__all__ = [
    'Shop', 'Supplier',
    'InventoryItem', 'StockMovement', 'Purchase', 'PurchaseLine', 'ITEM_CATEGORIES',
    'StockAllocation', 'AllocationLine', 'Exchange', 'ExchangeLine',
    'Repair', 'RepairPart',
    'Payment', 'SupplierDebt',
    'Sale', 'SaleLine',
    'ActivityEvent',
]
