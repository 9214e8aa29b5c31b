"""Commission rules, qualification and monthly residual processing."""

from academy.services.commission.monthly_processor import MonthlyVolumeProcessor
from academy.services.commission.qualification import QualificationService

__all__ = ["MonthlyVolumeProcessor", "QualificationService"]
