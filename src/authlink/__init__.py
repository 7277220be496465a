"""Identity and credential linking core.

This package owns the user record, the per-method credential stores, the
per-user link table that records which credential is active for each method,
and the reversible schema transformations that evolve them.
"""

__version__ = "0.1.0"
