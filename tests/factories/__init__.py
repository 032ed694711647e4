"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation.
"""

from .client import ClientFactory
from .project import ProjectFactory, RequirementFactory, ApprovedRequirementFactory
from .quote import LineItemFactory

__all__ = [
    "ClientFactory",
    "ProjectFactory",
    "RequirementFactory",
    "ApprovedRequirementFactory",
    "LineItemFactory",
]
