"""Durable status checkpoints and the action configuration document."""
