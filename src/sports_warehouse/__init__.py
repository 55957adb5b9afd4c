"""Sports warehouse staging-to-production loader.

Loads loosely-typed staged League, Team, Player and Match rows into
strongly-typed production tables, enforcing primary keys, foreign keys and
entity invariants row by row.
"""

__version__ = "0.1.0"
