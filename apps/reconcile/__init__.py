"""Reconciliation command line surface."""
