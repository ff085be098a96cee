"""
Swiss Bookkeeping - Source Package

Turns invoices, receipts and bank statements into a categorized,
compliance-checked Swiss general ledger with a full audit trail.

DESIGN PRINCIPLES:
1. The language model suggests, deterministic Swiss rules decide
2. One bad transaction never aborts a batch
3. Compliance problems are reported, never silently fixed
4. Every step must be auditable
5. The classifier is swappable
"""

__version__ = "1.0.0"
__author__ = "Swiss Bookkeeping Team"
