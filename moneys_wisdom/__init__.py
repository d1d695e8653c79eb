"""
Money's Wisdom - Source Package

A personal-finance journaling tool: income is split across three
purpose-tagged funds (Freedom, Dream, Play), dreams are saved for and
realized, and small daily successes are written down.

DESIGN PRINCIPLES:
1. The three percentages always sum to 100
2. Every save is observably newer than anything seen before
3. Validate before mutating, never roll back after
4. Deleting a record undoes exactly what it did
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Money's Wisdom Team"
