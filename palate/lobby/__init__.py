"""
Group lobby sessions.

Responsibilities:
- Issue 6-digit join codes and track who is in each lobby.
- Gate matching on every participant's vibe check.
- Record swipes and reduce them to the ballot everybody liked.
- Tally votes, flag ties for a host revote and settle on one winner.
- Keep each lobby's round state consistent under concurrent requests.
"""
