"""Orchestration layer: conversation store, turn driver, apply workflow and CLI."""
