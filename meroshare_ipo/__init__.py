"""
MeroShare IPO automation.
Logs in to MeroShare, finds an open IPO, checks its allotment terms and applies.
"""

__version__ = "0.1.0"
