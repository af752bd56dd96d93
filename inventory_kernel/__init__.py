"""
Inventory Kernel - warehouse stock engine for EV warranty service centers.

A transactional, append-only inventory ledger with:
- Per-warehouse stock counters guarded by row locks
- Serialized component tracking through its physical lifecycle
- All-or-nothing FIFO allocation across prioritized warehouses
- A stock-transfer workflow (approve, ship, receive, reject, cancel)
- Post-commit, best-effort notifications and low-stock alerts
"""

__version__ = "0.1.0"
