"""Job application intake API."""
