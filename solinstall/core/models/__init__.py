"""
Domain models — Pydantic types for the installer.

All models are re-exported here for convenient access:

    from solinstall.core.models import SolutionDescriptor, RepositoryStructure, Receipt
"""

from solinstall.core.models.outcome import EnvironmentMergeResult, InstallationOutcome
from solinstall.core.models.receipt import Receipt
from solinstall.core.models.solution import InstallKind, SolutionDescriptor
from solinstall.core.models.structure import RepositoryStructure

__all__ = [
    # outcome.py
    "EnvironmentMergeResult",
    "InstallationOutcome",
    # solution.py
    "InstallKind",
    # receipt.py
    "Receipt",
    # structure.py
    "RepositoryStructure",
    "SolutionDescriptor",
]
