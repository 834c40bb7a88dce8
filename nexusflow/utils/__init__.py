"""Utility functions for the NexusFlow trade network."""

from .quotes import LEAD_TIMES, PRICE_MODIFIERS, QuoteCalculator, select_winner


__all__ = ["LEAD_TIMES", "PRICE_MODIFIERS", "QuoteCalculator", "select_winner"]
