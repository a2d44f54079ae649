"""
Candidate supplier.

Responsibilities:
- Load the local restaurant catalog.
- Turn a lobby's aggregated vibe checks into hard filters and soft scores.
- Return a bounded, de-duplicated, ranked candidate list for swiping.
"""
