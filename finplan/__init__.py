"""
finplan - Goal-Based Financial Planning Engine

Tracks household savings goals, creates goals automatically from
recognised patterns, splits surplus cash across open goals, scores the
investment portfolio and produces prioritized recommendations.

DESIGN PRINCIPLES:
1. Money is Decimal end to end
2. Suspect input is flagged, never silently corrected
3. Every goal mutation is auditable
4. Rules and generators fail in isolation
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "finplan Team"
