"""
Core package for the MeroShare IPO automation.
Lightweight package init to avoid import cycles.

Consumers should import submodules directly, e.g.:
  from meroshare_ipo.core.chain import StepChain, StepContext
  from meroshare_ipo.core.orchestrator import IpoAutomation
  from meroshare_ipo.core.engine import Engine
"""

__all__: list[str] = []
