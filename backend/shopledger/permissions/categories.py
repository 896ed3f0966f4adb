# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    INVENTORY = "INVENTORY"
    ALLOCATIONS = "ALLOCATIONS"
    EXCHANGES = "EXCHANGES"
    REPAIRS = "REPAIRS"
    PAYMENTS = "PAYMENTS"
    SUPPLIERS = "SUPPLIERS"
    SALES = "SALES"
    SYSTEM = "SYSTEM"
