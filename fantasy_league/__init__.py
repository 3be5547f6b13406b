"""
Fantasy ultimate league engine: scoring, transfers, budget and player prices.
"""
