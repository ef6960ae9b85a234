"""Domain services: stores, ledger, approvals, run log and file storage."""
