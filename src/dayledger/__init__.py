"""dayledger - daily task ledger with a personal reset hour."""
