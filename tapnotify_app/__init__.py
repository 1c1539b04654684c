"""
TapNotify - Double-tap notification trigger engine

Turns a noisy stream of button presses into a debounced, crash-resilient
state machine that fires a webhook POST or a templated message exactly once
per arming cycle.
"""

__version__ = "0.1.0"
__author__ = "TapNotify Team"
