"""
Budget Tracker - Source Package

A local-first personal budget tracker: a monthly budget, per-day
expenses and recurring subscriptions, summarized by month and year.

DESIGN PRINCIPLES:
1. The device copy is always written first and never lost
2. The remote copy is best-effort and coalesced
3. Summaries are derived on demand, never stored
4. Corrupt or foreign data degrades to defaults, never to a crash
5. Storage and identity backends are swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Tracker Team"
