"""HealthSafe Vault core.

Encrypts structured health records, derives integrity hashes and a health
score, and simulates the two-phase ledger write (record creation, then NFT
mint) behind a single staged workflow.
"""

__version__ = "1.0.0"
