"""Web server for status inspection and manual alert triggering."""
