"""Services: record service client and money helpers."""
