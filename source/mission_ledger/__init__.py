"""Mission Ledger: bank transaction reconciliation for mission support pledges and outgoings."""
