# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View stock levels, movements and low-stock alerts",
        PermissionCategory.INVENTORY,
    ),
    (
        "VIEW_COSTS",
        "View Costs",
        "See cost prices and admin cost prices on inventory rows",
        PermissionCategory.INVENTORY,
    ),
    (
        "ADJUST_STOCK",
        "Adjust Stock",
        "Post manual stock corrections and deactivate items",
        PermissionCategory.INVENTORY,
    ),
    (
        "RECORD_PURCHASE",
        "Record Purchase",
        "Record supplier purchases into the pool or a shop",
        PermissionCategory.INVENTORY,
    ),
]


# -- ALLOCATIONS --

ALLOCATION_PERMISSIONS = [
    (
        "REQUEST_ALLOCATION",
        "Request Allocation",
        "Propose a split of pool stock across shops",
        PermissionCategory.ALLOCATIONS,
    ),
    (
        "APPROVE_ALLOCATION",
        "Approve Allocation",
        "Approve or reject pool stock allocations",
        PermissionCategory.ALLOCATIONS,
    ),
]


# -- EXCHANGES --

EXCHANGE_PERMISSIONS = [
    (
        "CREATE_EXCHANGE",
        "Create Exchange",
        "Request a stock exchange involving the user's shop",
        PermissionCategory.EXCHANGES,
    ),
    (
        "CONFIRM_EXCHANGE",
        "Confirm Exchange Receipt",
        "Attest receipt of exchanged stock at the receiving shop",
        PermissionCategory.EXCHANGES,
    ),
    (
        "COMPLETE_EXCHANGE",
        "Complete Exchange",
        "Complete or reject confirmed exchanges (moves stock)",
        PermissionCategory.EXCHANGES,
    ),
]


# -- REPAIRS --

REPAIR_PERMISSIONS = [
    (
        "CREATE_REPAIR",
        "Create Repair",
        "Book in repair tickets (consumes in-house parts)",
        PermissionCategory.REPAIRS,
    ),
    (
        "UPDATE_REPAIR",
        "Update Repair",
        "Move repair tickets through workshop states",
        PermissionCategory.REPAIRS,
    ),
    (
        "COLLECT_PAYMENT",
        "Collect Payment",
        "Record repair payments or submit them for approval",
        PermissionCategory.REPAIRS,
    ),
    (
        "APPROVE_PAYMENT",
        "Approve Payment",
        "Countersign payments submitted for approval",
        PermissionCategory.REPAIRS,
    ),
    (
        "CONFIRM_COLLECTION",
        "Confirm Collection",
        "Release a fully paid device to the customer",
        PermissionCategory.REPAIRS,
    ),
    (
        "COST_PARTS",
        "Cost Outsourced Parts",
        "Enter supplier invoice prices for outsourced parts",
        PermissionCategory.REPAIRS,
    ),
    (
        "DELETE_REPAIR",
        "Delete Repair",
        "Delete repair tickets",
        PermissionCategory.REPAIRS,
    ),
]


# -- PAYMENTS --

PAYMENT_PERMISSIONS = [
    (
        "VIEW_PAYMENTS",
        "View Payments",
        "View payment ledger and daily totals",
        PermissionCategory.PAYMENTS,
    ),
    (
        "SETTLE_CASH",
        "Settle Cash",
        "Mark cash payments as banked",
        PermissionCategory.PAYMENTS,
    ),
]


# -- SUPPLIERS --

SUPPLIER_PERMISSIONS = [
    (
        "VIEW_SUPPLIER_DEBTS",
        "View Supplier Debts",
        "View amounts owed to suppliers",
        PermissionCategory.SUPPLIERS,
    ),
    (
        "MANAGE_SUPPLIER_DEBTS",
        "Manage Supplier Debts",
        "Cost and settle supplier debts",
        PermissionCategory.SUPPLIERS,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "RECORD_SALE",
        "Record Sale",
        "Sell stock from the user's shop",
        PermissionCategory.SALES,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "VIEW_ACTIVITY",
        "View Activity",
        "Read the activity feed",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + ALLOCATION_PERMISSIONS
    + EXCHANGE_PERMISSIONS
    + REPAIR_PERMISSIONS
    + PAYMENT_PERMISSIONS
    + SUPPLIER_PERMISSIONS
    + SALES_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
