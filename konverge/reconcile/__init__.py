"""Reconcile core for Konverge.

Submodules:
    plurals    -- kind -> plural mapping (lexical table plus discovery index).
    engine     -- Reconciler: diff live/desired maps, create/update/prune.
    scheduler  -- ReconcileLoop: runs enumerate -> load -> apply on an interval.
"""
