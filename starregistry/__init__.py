"""
Star Registry - a single-node, hash-chained ledger of star ownership claims.

Claims are admitted only after the claimant signs a short-lived
challenge with the wallet behind their address.
"""

__version__ = "0.1.0"
