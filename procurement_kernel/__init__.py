"""
Procurement Kernel

Persistence, domain rules and services for the spare-part procurement
ledger:
- Request -> Receive -> RRP approval chain with atomic rejection cascades
- Stock item upsert on receive approval
- RRP numbering with T-suffix corrections per fiscal year
"""

__version__ = "0.1.0"
