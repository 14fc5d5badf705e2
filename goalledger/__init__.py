"""Allocation and planning engine for a personal investment ledger."""
