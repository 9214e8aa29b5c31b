"""
Ternary referral tree.

Position math, placement of new members and upline queries.
"""

from academy.services.network.placement import NetworkPlacementService
from academy.services.network.queries import NetworkQueryService, TreeSlot

__all__ = ["NetworkPlacementService", "NetworkQueryService", "TreeSlot"]
