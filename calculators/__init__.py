"""Calculation functions for equity vesting, exercise and tax scenarios."""
