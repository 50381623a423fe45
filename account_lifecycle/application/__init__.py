"""
===============================================================================
APPLICATION LAYER (Public API / Exports)
===============================================================================

Exposes the stable entry points of the application layer:
  - GracePeriodScheduler / SweepReport: executes due deletion requests
  - Use cases live under `usecases/`.
===============================================================================
"""

from .grace_period_scheduler import REVIEW_ALERT, GracePeriodScheduler, SweepReport

__all__ = ["GracePeriodScheduler", "REVIEW_ALERT", "SweepReport"]
