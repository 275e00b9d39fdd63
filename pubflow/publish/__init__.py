"""Phased publication of the organization's npm repositories."""
