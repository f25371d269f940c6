"""
Team Scrambler Package

A squad-preserving team balancer for two-sided multiplayer matches. The package
plans which players to move between teams (keeping squads together wherever
possible and respecting per-team capacity caps) and drives those moves through
an unreliable external control channel with bounded retries and timeouts.
"""

__version__ = "1.0.0"
