"""marketledger: subscription-gated asset marketplace ledger."""

__version__ = "0.1.0"
