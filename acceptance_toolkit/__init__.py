"""Helpers for preparing acceptance-test fleets."""
