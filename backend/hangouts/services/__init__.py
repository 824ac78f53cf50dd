"""Calendar items, recurrence expansion and storage."""
