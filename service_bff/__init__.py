"""Orchestrix BFF service package."""
