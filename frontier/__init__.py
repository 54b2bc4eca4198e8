"""
Frontier: the learning core of an adaptive tutoring platform.

Decides, per student and per concept, what is already known (diagnostic
placement), how confident that knowledge is (Bayesian Knowledge Tracing),
when it should be revisited (spaced repetition) and when a skill has become
automatic (fluency plateau detection).
"""

from frontier.service import PlacementService

__version__ = "1.0.0"

__all__ = ["PlacementService", "__version__"]
