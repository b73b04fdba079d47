"""
FantasyFive: roster, transfer and scoring engine for a five-a-side fantasy league.
"""
