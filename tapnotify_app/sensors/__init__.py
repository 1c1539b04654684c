"""
Read-only location and profile value sources.

The engine never owns these feeds; it reads their latest value through
latest_value(), which substitutes a neutral reading on any error.
"""
