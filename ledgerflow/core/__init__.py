"""
Bookkeeping core: categorization, learned rules, P&L and journal entries.

Submodules are imported directly (ledgerflow.core.categorizer, ...).
"""
