"""
Action state machine, runtime and delivery cycle module.

Manages the double-tap lifecycle IDLE → FIRST → EXECUTING → SUCCESS/ERROR → IDLE,
its durable checkpoints and their recovery after a restart.
"""
