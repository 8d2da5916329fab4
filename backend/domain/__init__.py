"""
Domain Layer

Core lending rules, kept free of persistence concerns.

Structure:
- value_objects/: Immutable values (loan state, reader limits)
- aggregates/: Pure rule holders over catalog data (book stock, domain forest)
"""
