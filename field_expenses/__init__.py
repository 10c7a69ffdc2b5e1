"""Field expense tracking: daily category limits, ledger and approvals."""

__version__ = "0.1.0"
