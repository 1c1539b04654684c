"""
Utility functions module.

Time Semantics:
- All timestamps handled by the engine are wall-clock epoch milliseconds
- Components take an injectable clock so recovery math can be exercised
  without waiting in real time
"""
