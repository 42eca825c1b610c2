"""Date and amount helpers."""
