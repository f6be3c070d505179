"""txmatch - reconcile bank statement transactions against expense receipts."""

__version__ = "0.1.0"
