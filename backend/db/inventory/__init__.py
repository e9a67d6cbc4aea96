"""
Inventory (one stock level per item, per team).

Models:
- InventoryCategory / InventoryUnit (team lookup rows referenced by items)
- InventoryItem (current_stock cached on the row, version-guarded)
- StockMovement (append-only ledger; the only writer of current_stock)
"""
