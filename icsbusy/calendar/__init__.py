"""Calendar feed parsing: block extraction, field parsing, recurrence and reconciliation."""
