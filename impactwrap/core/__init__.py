"""
Shared building blocks for Impact Wrapped services.

Configuration, structured logging, the error taxonomy, database
connectivity and small helpers live here so every service uses them the
same way.
"""
