"""
Trip Ledger - Source Package

A local-first trip expense and itinerary tracker that keeps working
offline and reconciles with a remote sheet when connectivity returns.

DESIGN PRINCIPLES:
1. Local state is applied first, the network catches up later
2. Balances are always recomputed, never edited
3. Queued commands are never lost or reordered
4. Bad data degrades to diagnostics, not crashes
5. Storage and transport are swappable
"""

__version__ = "1.0.0"
__author__ = "Trip Ledger Team"
