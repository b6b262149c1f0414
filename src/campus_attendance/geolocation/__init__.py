"""Client-side position sampling.

Advisory only: nothing here decides whether a location is acceptable for a
check-in.
"""
